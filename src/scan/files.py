"""Source root scanning for ngbundle."""

from __future__ import annotations

from fnmatch import fnmatch
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

JS_SUFFIX = ".js"


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        path.resolve().relative_to(root.resolve())
    except (OSError, ValueError):
        return False
    return True


def _matches_filters(
    rel_path_str: str,
    include_patterns: list[str] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    if include_patterns and not any(
        fnmatch(rel_path_str, pat) for pat in include_patterns
    ):
        return False

    return not (
        exclude_patterns and any(fnmatch(rel_path_str, pat) for pat in exclude_patterns)
    )


def _should_include_file(
    path: Path,
    directory: Path,
    gitignore_matches: Callable[[str], bool] | None,
    include_patterns: list[str] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a scanned file belongs to the source root."""
    if not path.is_file() or path.is_symlink():
        return False

    if not _is_within_root(path, directory):
        return False

    if gitignore_matches is not None and gitignore_matches(str(path)):
        return False

    rel_path_str = path.relative_to(directory).as_posix()
    return _matches_filters(rel_path_str, include_patterns, exclude_patterns)


def _build_gitignore_matcher(
    root: Path,
    *,
    nested_gitignore: bool,
) -> Callable[[str], bool] | None:
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file() and not gitignore_path.is_symlink():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    gitignore_paths = sorted(
        {
            path
            for path in [root / ".gitignore", *root.rglob(".gitignore")]
            if path.is_file() and not path.is_symlink()
        },
        key=lambda p: p.relative_to(root).as_posix(),
    )
    if not gitignore_paths:
        return None

    matchers = [parse_gitignore(path) for path in gitignore_paths]

    def matches(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                continue
        return False

    return matches


def find_source_files(
    directory: Path,
    *,
    suffix: str = JS_SUFFIX,
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    respect_gitignore: bool = False,
    nested_gitignore: bool = False,
) -> Iterator[Path]:
    """Find all source files under a root.

    Args:
        directory: Source root to search recursively
        suffix: File extension to collect (default ".js")
        include_patterns: Optional fnmatch patterns relative to the root; if
            provided, files must match at least one of them
        exclude_patterns: Optional fnmatch patterns; matching files are skipped
        respect_gitignore: Skip files ignored by the root .gitignore
        nested_gitignore: With respect_gitignore, compose every .gitignore
            under the root instead of only the top-level one

    Yields:
        Paths sorted by POSIX relative path, so the scan order is stable
        across platforms and runs.

    Raises:
        NotADirectoryError: If the root does not exist or is not a directory.
    """
    if not directory.is_dir():
        msg = f"Source directory does not exist: {directory}"
        raise NotADirectoryError(msg)

    gitignore_matches = (
        _build_gitignore_matcher(directory, nested_gitignore=nested_gitignore)
        if respect_gitignore
        else None
    )

    matched_files = [
        path
        for path in directory.rglob(f"*{suffix}")
        if _should_include_file(
            path,
            directory,
            gitignore_matches,
            include_patterns,
            exclude_patterns,
        )
    ]

    matched_files.sort(key=lambda p: p.relative_to(directory).as_posix())

    yield from matched_files


__all__ = ["JS_SUFFIX", "find_source_files"]
