"""Import tag rendering for ngbundle templates."""

from imports.writer import (
    ImportEntry,
    ImportGroup,
    ImportsError,
    ImportsReport,
    build_import_entry,
    insert_between_labels,
    render_template,
    sort_module_files,
    write_imports,
)

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
