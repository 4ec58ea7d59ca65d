"""Bundle orchestration: config -> module graph -> templates and exports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from graph.algos import build_dot_diagram, find_circular_reference
from graph.builder import SourceRoot, build_modules_structure
from imports.writer import write_imports
from rules.injects import validate_injects
from utils import apply_mapping

if TYPE_CHECKING:
    from pathlib import Path

    from graph.builder import ModulesStructure
    from imports.writer import ImportsReport
    from rules.config import BundleConfig, SourceDirConfig


def _source_root(base_dir: Path, source: SourceDirConfig) -> SourceRoot:
    mapping = dict(source.mapping)

    def mapper(file_name: str, _prefix: str) -> str:
        return apply_mapping(file_name, mapping)

    return SourceRoot(
        directory=(base_dir / source.dir).resolve(),
        mapper=mapper if mapping else None,
        prefix=source.dir,
    )


class Bundle:
    """A built module graph together with the config that produced it."""

    def __init__(
        self, config: BundleConfig, modules: ModulesStructure, base_dir: Path
    ) -> None:
        self.config = config
        self.modules = modules
        self.base_dir = base_dir

    @property
    def total_size(self) -> int:
        return self.modules.total_size

    def template_paths(self) -> list[Path]:
        return [(self.base_dir / html).resolve() for html in self.config.html]

    def write_imports(self) -> list[ImportsReport]:
        """Rewrite every configured template, or none if one fails."""
        return write_imports(self.template_paths(), self.modules, self.config.static)

    def build_dot_diagram(self) -> str:
        return build_dot_diagram(self.modules)

    def validate_injects(self) -> list[str]:
        return validate_injects(
            self.modules, on_collision=self.config.provider_collision
        )

    def find_circular_reference(self) -> list[str] | None:
        return find_circular_reference(self.modules)


def create_bundle(config: BundleConfig, base_dir: Path) -> Bundle:
    """Build the module graph described by a config.

    Args:
        config: Validated bundle configuration
        base_dir: Directory that relative ``js`` and ``html`` paths are
            resolved against (normally the config file's directory)

    Raises:
        NotADirectoryError: If a configured source directory does not exist.
    """
    roots = [_source_root(base_dir, source) for source in config.js]
    modules = build_modules_structure(
        roots,
        validate_provider_constructor=config.validate_provider_constructor,
        include_patterns=config.include or None,
        exclude_patterns=config.exclude or None,
        respect_gitignore=config.respect_gitignore,
        nested_gitignore=config.nested_gitignore,
    )
    return Bundle(config, modules, base_dir)


__all__ = ["Bundle", "create_bundle"]
