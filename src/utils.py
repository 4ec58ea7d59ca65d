"""Shared utilities for ngbundle."""

from __future__ import annotations

import math
from pathlib import Path


def join_display_name(prefix: str, relative_path: str | Path) -> str:
    """Join a source root prefix and a root-relative path into a file name.

    Args:
        prefix: Source root as written in the config (e.g., "app/" or "app")
        relative_path: Path relative to that root

    Returns:
        POSIX file name (e.g., "app/core/module.js")

    Examples:
        >>> join_display_name("app/", "core/module.js")
        'app/core/module.js'
        >>> join_display_name("app", Path("core/module.js"))
        'app/core/module.js'
    """
    rel_str = (
        relative_path.as_posix()
        if isinstance(relative_path, Path)
        else str(relative_path).replace("\\", "/")
    )
    normalized_prefix = prefix.replace("\\", "/")
    if not normalized_prefix:
        return rel_str
    if normalized_prefix.endswith("/"):
        return f"{normalized_prefix}{rel_str}"
    return f"{normalized_prefix}/{rel_str}"


def apply_mapping(file_name: str, mapping: dict[str, str] | None) -> str:
    """Map a scanned file name to the name used in generated imports.

    The first occurrence of the mapping key is replaced by its value, then the
    first doubled slash left by the replacement is collapsed.

    Examples:
        >>> apply_mapping("app/core/module.js", {"app/": "/static/"})
        '/static/core/module.js'
        >>> apply_mapping("app/core/module.js", {"app": "/static/"})
        '/static/core/module.js'
        >>> apply_mapping("app/core/module.js", None)
        'app/core/module.js'
    """
    if not mapping:
        return file_name

    source, target = next(iter(mapping.items()))
    return file_name.replace(source, target, 1).replace("//", "/", 1)


def file_size_kb(path: Path) -> int:
    """Return the size of a file in whole kilobytes, rounded up."""
    return math.ceil(path.stat().st_size / 1024.0)
