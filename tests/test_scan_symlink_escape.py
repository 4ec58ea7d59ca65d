from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from scan.files import _build_gitignore_matcher, find_source_files

if TYPE_CHECKING:
    from pathlib import Path


def _relative(root: Path, **kwargs: object) -> list[str]:
    return [path.relative_to(root).as_posix() for path in find_source_files(root, **kwargs)]


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_find_source_files_skips_symlinked_dirs(tmp_path: Path) -> None:
    app_root = tmp_path / "app"
    app_root.mkdir()
    (app_root / "core").mkdir()
    (app_root / "core" / "module.js").write_text("angular.module('core', []);\n", encoding="utf-8")

    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "leak.js").write_text("angular.module('leak', []);\n", encoding="utf-8")

    symlink_dir = app_root / "linked"
    symlink_dir.symlink_to(external_root, target_is_directory=True)

    results = _relative(app_root)

    assert "core/module.js" in results
    assert "linked/leak.js" not in results


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_nested_gitignore_skips_symlinked_gitignore(tmp_path: Path) -> None:
    app_root = tmp_path / "app"
    app_root.mkdir()
    (app_root / "core").mkdir()
    (app_root / "core" / "module.js").write_text("", encoding="utf-8")
    (app_root / ".gitignore").write_text("*.min.js\n", encoding="utf-8")

    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "outside.gitignore").write_text("core/module.js\n", encoding="utf-8")

    symlink_gitignore = app_root / "linked.gitignore"
    symlink_gitignore.symlink_to(external_root / "outside.gitignore")

    matcher = _build_gitignore_matcher(app_root, nested_gitignore=True)
    assert matcher is not None
    assert matcher(str(app_root / "core" / "module.js")) is False


def test_find_source_files_sorted_and_filtered(tmp_path: Path) -> None:
    app_root = tmp_path / "app"
    for rel_path in ["b/main.js", "a/z.js", "a/b.js", "a/readme.md", "vendor/lib.js"]:
        path = app_root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")
    (app_root / ".gitignore").write_text("vendor/\n", encoding="utf-8")

    assert _relative(app_root) == ["a/b.js", "a/z.js", "b/main.js", "vendor/lib.js"]
    assert _relative(app_root, respect_gitignore=True) == ["a/b.js", "a/z.js", "b/main.js"]
    assert _relative(app_root, exclude_patterns=["a/*", "vendor/*"]) == ["b/main.js"]
    assert _relative(app_root, include_patterns=["a/*"]) == ["a/b.js", "a/z.js"]


def test_find_source_files_missing_root(tmp_path: Path) -> None:
    with pytest.raises(NotADirectoryError, match="Source directory does not exist"):
        list(find_source_files(tmp_path / "missing"))
