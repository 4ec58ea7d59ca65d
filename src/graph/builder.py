"""Module graph construction from JavaScript source roots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graph.models import BuildDiagnostic, ModuleConfig, ProviderConfig
from parse.declarations import ModuleEvent, ProviderEvent, extract_declarations
from scan.files import find_source_files
from utils import file_size_kb, join_display_name

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from pathlib import Path

    from parse.declarations import DeclarationEvent

    FileNameMapper = Callable[[str, str], str]

logger = logging.getLogger(__name__)


class DuplicateProviderError(Exception):
    """Raised when a module registers the same provider name twice."""

    def __init__(self, module: str, provider: str) -> None:
        self.module = module
        self.provider = provider
        super().__init__(f"Duplicate declaration of {provider} in module {module}")


class ModulesStructure:
    """Module name -> ModuleConfig, in the order modules were first seen."""

    def __init__(self) -> None:
        self.modules: dict[str, ModuleConfig] = {}
        self.diagnostics: list[BuildDiagnostic] = []

    def __contains__(self, name: object) -> bool:
        return name in self.modules

    def __getitem__(self, name: str) -> ModuleConfig:
        return self.modules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.modules)

    def __len__(self) -> int:
        return len(self.modules)

    @property
    def total_size(self) -> int:
        return sum(module.size for module in self.modules.values())

    def upsert_module(
        self,
        name: str,
        dependencies: Sequence[str] | None,
        file_name: str,
        file_size: int,
    ) -> ModuleConfig:
        """Create or update a module entry.

        A non-None ``dependencies`` marks a declaration: it replaces the
        dependency list and puts the declaring file first. A file is added to
        a module at most once and its size is counted only then.
        """
        module = self.modules.get(name)
        if module is None:
            module = self.modules[name] = ModuleConfig()

        if dependencies is not None:
            module.dependencies = list(dependencies)

        if file_name not in module.files:
            if dependencies is not None:
                module.files.insert(0, file_name)
            else:
                module.files.append(file_name)
            module.size += file_size
        elif dependencies is not None and module.files[0] != file_name:
            module.files.remove(file_name)
            module.files.insert(0, file_name)

        return module

    def add_provider(self, module_name: str, provider: ProviderConfig) -> None:
        module = self.modules[module_name]
        if module.provider(provider.name) is not None:
            raise DuplicateProviderError(module_name, provider.name)
        module.providers.append(provider)

    def to_dict(self) -> dict[str, dict[str, object]]:
        return {name: module.model_dump() for name, module in self.modules.items()}


@dataclass(frozen=True)
class SourceRoot:
    """A directory to scan.

    ``prefix`` is how the directory is spelled in generated file names
    (defaults to the directory itself); ``mapper`` rewrites each
    ``(file_name, prefix)`` pair into the name stored in the graph.
    """

    directory: Path
    mapper: FileNameMapper | None = None
    prefix: str | None = None

    @property
    def display_prefix(self) -> str:
        return self.prefix if self.prefix is not None else self.directory.as_posix()


class _BuildState:
    """Traversal state shared by every file of one build."""

    def __init__(self, structure: ModulesStructure, *, validate: bool) -> None:
        self.structure = structure
        self.validate = validate
        self.current_module: str | None = None
        # Module alias variables outlive the file that binds them.
        self.module_aliases: set[str] = set()
        self.file_name = ""
        self.file_size = 0

    def report(self, diagnostic: BuildDiagnostic) -> None:
        self.structure.diagnostics.append(diagnostic)

    def apply(self, event: DeclarationEvent) -> None:
        if isinstance(event, ModuleEvent):
            self.structure.upsert_module(
                event.name, event.dependencies, self.file_name, self.file_size
            )
            self.current_module = event.name
        else:
            self._register_provider(event)

    def _register_provider(self, event: ProviderEvent) -> None:
        if event.passive:
            logger.debug(
                "%s:%d: %s %s is not validated",
                self.file_name,
                event.line,
                event.kind,
                event.name,
            )
            return

        if event.missing_get or event.constructor is None:
            self.report(
                BuildDiagnostic(
                    kind="missing_get",
                    message=f"Provider {event.name} is missing $get field",
                    file=self.file_name,
                    line=event.line,
                    module=self.current_module,
                    provider=event.name,
                )
            )
            return

        injects: list[str] = []
        if event.constructor.minify_ready:
            injects = list(event.constructor.injects)
        elif self.validate:
            self.report(
                BuildDiagnostic(
                    kind="not_minify_ready",
                    message=(
                        f"Some provider in file {self.file_name} is not minify-ready. "
                        f"Possible name is {event.name}"
                    ),
                    file=self.file_name,
                    line=event.line,
                    module=self.current_module,
                    provider=event.name,
                )
            )
            return

        if self.current_module is None:
            self.report(
                BuildDiagnostic(
                    kind="orphan_provider",
                    message=f"Provider {event.name} is defined before its module",
                    file=self.file_name,
                    line=event.line,
                    provider=event.name,
                )
            )
            return

        provider = ProviderConfig(name=event.name, kind=event.kind, injects=injects)
        try:
            self.structure.add_provider(self.current_module, provider)
        except DuplicateProviderError as exc:
            self.report(
                BuildDiagnostic(
                    kind="duplicate_provider",
                    message=str(exc),
                    file=self.file_name,
                    line=event.line,
                    module=exc.module,
                    provider=exc.provider,
                )
            )


def build_modules_structure(
    roots: Sequence[SourceRoot],
    *,
    validate_provider_constructor: bool = True,
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    respect_gitignore: bool = False,
    nested_gitignore: bool = False,
) -> ModulesStructure:
    """Scan source roots and build the module graph.

    Args:
        roots: Source roots, processed in the given order
        validate_provider_constructor: Report registrations whose constructor
            is not minify-ready instead of recording them without injects
        include_patterns: fnmatch patterns a file must match (per root)
        exclude_patterns: fnmatch patterns that skip a file (per root)
        respect_gitignore: Skip files ignored by each root's .gitignore
        nested_gitignore: With respect_gitignore, honor nested .gitignore files

    Returns:
        The populated ModulesStructure. Build diagnostics are collected on
        ``structure.diagnostics`` and logged once the whole scan is done.
    """
    structure = ModulesStructure()
    state = _BuildState(structure, validate=validate_provider_constructor)

    for root in roots:
        prefix = root.display_prefix
        file_paths = list(
            find_source_files(
                root.directory,
                include_patterns=include_patterns,
                exclude_patterns=exclude_patterns,
                respect_gitignore=respect_gitignore,
                nested_gitignore=nested_gitignore,
            )
        )
        logger.info("Process path [%s], found %d js files", prefix, len(file_paths))

        for file_path in file_paths:
            raw_name = join_display_name(prefix, file_path.relative_to(root.directory))
            state.file_name = root.mapper(raw_name, prefix) if root.mapper else raw_name
            state.file_size = file_size_kb(file_path)

            for event in extract_declarations(
                file_path.read_bytes(), state.module_aliases
            ):
                state.apply(event)

    for diagnostic in structure.diagnostics:
        logger.warning("%s: %s", diagnostic.location(), diagnostic.message)

    logger.info(
        "Collected %d modules with total size %dKB",
        len(structure),
        structure.total_size,
    )
    return structure


__all__ = [
    "DuplicateProviderError",
    "ModulesStructure",
    "SourceRoot",
    "build_modules_structure",
]
