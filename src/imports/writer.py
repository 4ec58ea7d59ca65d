"""Rendering of module imports into template marker regions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from graph.algos import UnknownModuleError, resolve_dependencies

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from graph.builder import ModulesStructure
    from rules.config import StaticImportConfig, StaticImportEntry

logger = logging.getLogger(__name__)

ImportType = Literal["js", "css"]

SCRIPT_TEMPLATE = '<script{async_attr} type="text/javascript" src="{src}"></script>'
STYLESHEET_TEMPLATE = '<link{async_attr} rel="stylesheet" type="text/css" href="{src}">'
MODULE_COMMENT_TEMPLATE = "<!-- module {name} -->"

ASYNC_FILE_FLAG = "+async"

MODULES_JS_START_LABEL = "<!-- modules js begin -->"
MODULES_JS_END_LABEL = "<!-- modules js end -->"
STATIC_JS_START_LABEL = "<!-- static js [{name}] begin -->"
STATIC_JS_END_LABEL = "<!-- static js [{name}] end -->"
STATIC_CSS_START_LABEL = "<!-- static css [{name}] begin -->"
STATIC_CSS_END_LABEL = "<!-- static css [{name}] end -->"

_NG_APP = re.compile(r'ng-app="(.*?)"')


class ImportsError(Exception):
    """Raised when a template or an import entry cannot be processed."""


@dataclass(frozen=True)
class ImportEntry:
    src: str
    type: ImportType
    is_async: bool = False

    def render(self) -> str:
        template = SCRIPT_TEMPLATE if self.type == "js" else STYLESHEET_TEMPLATE
        return template.format(
            async_attr=" async" if self.is_async else "", src=self.src
        )


@dataclass(frozen=True)
class ImportGroup:
    comment: str
    entries: tuple[ImportEntry, ...]


@dataclass(frozen=True)
class RenderedImports:
    js: str
    css: str


@dataclass(frozen=True)
class ImportsReport:
    path: Path
    module: str
    load_order: tuple[str, ...]
    size: int


def build_import_entry(file_entry: str) -> ImportEntry:
    """Turn a file name into an import entry, honoring the +async flag."""
    is_async = ASYNC_FILE_FLAG in file_entry
    src = file_entry.replace(ASYNC_FILE_FLAG, "", 1)

    if src.endswith(".js"):
        return ImportEntry(src=src, type="js", is_async=is_async)
    if src.endswith(".css"):
        return ImportEntry(src=src, type="css", is_async=is_async)

    msg = f"Unrecognized file format for import file {src}"
    raise ImportsError(msg)


def sort_module_files(files: list[str]) -> list[str]:
    """Keep the declaring file first and sort the remaining files."""
    if not files:
        return []
    return [files[0], *sorted(files[1:])]


def collect_imports(
    config: StaticImportConfig,
) -> list[ImportEntry | ImportGroup | list[ImportEntry]]:
    """Read static import entries in any of the supported shapes."""
    collected: list[ImportEntry | ImportGroup | list[ImportEntry]] = []
    for entry in config:
        collected.append(_collect_entry(entry))
    return collected


def _collect_entry(
    entry: StaticImportEntry,
) -> ImportEntry | ImportGroup | list[ImportEntry]:
    if isinstance(entry, str):
        return build_import_entry(entry)

    if isinstance(entry, list):
        return [build_import_entry(item) for item in entry]

    if isinstance(entry, dict) and len(entry) == 1:
        comment, files = next(iter(entry.items()))
        file_list = files if isinstance(files, list) else [files]
        return ImportGroup(
            comment=comment,
            entries=tuple(build_import_entry(item) for item in file_list),
        )

    msg = f"Unrecognized format for static import {entry!r}"
    raise ImportsError(msg)


def _print_kind(
    imports: list[ImportEntry | ImportGroup | list[ImportEntry]],
    type_filter: ImportType,
) -> str:
    lines: list[str] = []
    for item in imports:
        if isinstance(item, ImportEntry):
            if item.type == type_filter:
                lines.append(item.render())
        elif isinstance(item, ImportGroup):
            rendered = [e.render() for e in item.entries if e.type == type_filter]
            if rendered:
                lines.append(f"<!-- {item.comment} -->")
                lines.extend(rendered)
        else:
            lines.extend(e.render() for e in item if e.type == type_filter)
    return "".join(f"{line}\n" for line in lines)


def print_imports(
    imports: list[ImportEntry | ImportGroup | list[ImportEntry]],
) -> RenderedImports:
    return RenderedImports(js=_print_kind(imports, "js"), css=_print_kind(imports, "css"))


def insert_between_labels(
    start_label: str,
    end_label: str,
    content: str,
    text: str,
    *,
    file_path: Path | str,
) -> str:
    """Replace whatever sits between two marker labels with ``content``."""
    start = text.find(start_label)
    if start < 0:
        msg = f"Imports label '{start_label}' was not found in file {file_path}"
        raise ImportsError(msg)

    end = text.find(end_label, start + len(start_label))
    if end < 0:
        msg = f"Imports label '{end_label}' was not found in file {file_path}"
        raise ImportsError(msg)

    return text[: start + len(start_label)] + "\n" + content + text[end:]


def find_root_module(text: str, file_path: Path | str) -> str:
    match = _NG_APP.search(text)
    if match is None or not match.group(1):
        msg = f"ng-app declaration was not found in file {file_path}"
        raise ImportsError(msg)
    return match.group(1)


def render_module_imports(load_order: list[str], modules: ModulesStructure) -> str:
    blocks: list[str] = []
    for name in load_order:
        entries: list[ImportEntry | ImportGroup | list[ImportEntry]] = [
            build_import_entry(f) for f in sort_module_files(modules[name].files)
        ]
        blocks.append(
            MODULE_COMMENT_TEMPLATE.format(name=name) + "\n" + print_imports(entries).js
        )
    return "".join(blocks)


def render_template(
    text: str,
    modules: ModulesStructure,
    static_imports: StaticImportConfig | dict[str, StaticImportConfig],
    *,
    file_path: Path | str,
) -> tuple[str, str, list[str]]:
    """Render all import regions of a template.

    Returns:
        The rewritten text, the root module and its load order (root last).
    """
    root_module = find_root_module(text, file_path)
    if root_module not in modules:
        raise UnknownModuleError(root_module, str(file_path))

    load_order = [*resolve_dependencies(root_module, modules), root_module]
    modules_block = render_module_imports(load_order, modules)

    static_block = ""
    if isinstance(static_imports, list):
        rendered = print_imports(collect_imports(static_imports))
        if rendered.css:
            msg = (
                "Static css imports need a named static section with "
                f"'static css [name]' labels, got:\n{rendered.css}"
            )
            raise ImportsError(msg)
        static_block = rendered.js
    else:
        for name, section in static_imports.items():
            rendered = print_imports(collect_imports(section))
            if rendered.js:
                text = insert_between_labels(
                    STATIC_JS_START_LABEL.format(name=name),
                    STATIC_JS_END_LABEL.format(name=name),
                    rendered.js,
                    text,
                    file_path=file_path,
                )
            if rendered.css:
                text = insert_between_labels(
                    STATIC_CSS_START_LABEL.format(name=name),
                    STATIC_CSS_END_LABEL.format(name=name),
                    rendered.css,
                    text,
                    file_path=file_path,
                )

    text = insert_between_labels(
        MODULES_JS_START_LABEL,
        MODULES_JS_END_LABEL,
        static_block + modules_block,
        text,
        file_path=file_path,
    )
    return text, root_module, load_order


def write_imports(
    file_paths: Sequence[Path],
    modules: ModulesStructure,
    static_imports: StaticImportConfig | dict[str, StaticImportConfig],
) -> list[ImportsReport]:
    """Rewrite the import regions of template files in place.

    Every template is rendered before any of them is written, so a bad
    template leaves all files untouched.

    Raises:
        ImportsError: If ng-app, a label or an import entry is invalid.
        UnknownModuleError: If the ng-app module was not collected.
        CircularDependencyError: If the graph contains a cycle.
    """
    rendered_templates = []
    for file_path in file_paths:
        text = file_path.read_text(encoding="utf-8")
        rendered_templates.append(
            (file_path, *render_template(text, modules, static_imports, file_path=file_path))
        )

    reports: list[ImportsReport] = []
    for file_path, rendered, root_module, load_order in rendered_templates:
        file_path.write_text(rendered, encoding="utf-8")

        size = sum(modules[name].size for name in load_order)
        logger.info("App %s has %dKB of non-static imports", root_module, size)

        reports.append(
            ImportsReport(
                path=file_path,
                module=root_module,
                load_order=tuple(load_order),
                size=size,
            )
        )
    return reports


__all__ = [
    "ImportEntry",
    "ImportGroup",
    "ImportsError",
    "ImportsReport",
    "build_import_entry",
    "insert_between_labels",
    "render_template",
    "sort_module_files",
    "write_imports",
]
