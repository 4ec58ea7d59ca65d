"""Module graph exports (JSON structure and DOT diagram)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from graph.builder import ModulesStructure


def write_exports(
    config_path: Path,
    modules: ModulesStructure,
    *,
    make_json: bool = False,
    make_dot: bool = False,
) -> list[Path]:
    """Write exports via lazy import to avoid package import cycles."""
    from artifacts.write import write_exports as _write_exports

    return _write_exports(
        config_path, modules, make_json=make_json, make_dot=make_dot
    )


__all__ = ["write_exports"]
