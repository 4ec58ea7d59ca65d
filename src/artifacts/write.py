from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from artifacts.utils import _write_json, _write_text
from graph.algos import build_dot_diagram

if TYPE_CHECKING:
    from pathlib import Path

    from graph.builder import ModulesStructure

logger = logging.getLogger(__name__)

MODULES_JSON_SUFFIX = ".modules.json"
DOT_SUFFIX = ".dot"


def export_path(config_path: Path, suffix: str) -> Path:
    """Place an export next to its config: app.toml -> app.modules.json."""
    return config_path.with_name(config_path.stem + suffix)


def write_modules_json(path: Path, modules: ModulesStructure) -> Path:
    """Write the collected modules structure as JSON."""
    _write_json(path, modules)
    logger.info("Wrote modules structure to %s", path)
    return path


def write_dot(path: Path, modules: ModulesStructure) -> Path:
    """Write the module dependency diagram in DOT notation."""
    _write_text(path, build_dot_diagram(modules))
    logger.info("Wrote dependency diagram to %s", path)
    return path


def write_exports(
    config_path: Path,
    modules: ModulesStructure,
    *,
    make_json: bool = False,
    make_dot: bool = False,
) -> list[Path]:
    """Write the requested exports beside the config file.

    Returns:
        Paths of the files written.
    """
    written: list[Path] = []
    if make_json:
        written.append(
            write_modules_json(export_path(config_path, MODULES_JSON_SUFFIX), modules)
        )
    if make_dot:
        written.append(write_dot(export_path(config_path, DOT_SUFFIX), modules))
    return written


__all__ = [
    "DOT_SUFFIX",
    "MODULES_JSON_SUFFIX",
    "export_path",
    "write_dot",
    "write_exports",
    "write_modules_json",
]
