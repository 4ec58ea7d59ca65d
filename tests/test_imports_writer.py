from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from graph.algos import UnknownModuleError
from graph.builder import ModulesStructure
from imports.writer import (
    ImportEntry,
    ImportsError,
    build_import_entry,
    insert_between_labels,
    render_template,
    sort_module_files,
    write_imports,
)

if TYPE_CHECKING:
    from pathlib import Path


TEMPLATE = """<html ng-app="app">
<head>
<!-- static css [vendor] begin -->
<!-- static css [vendor] end -->
</head>
<body>
<!-- static js [vendor] begin -->
<!-- static js [vendor] end -->
<!-- modules js begin -->
stale content
<!-- modules js end -->
</body>
</html>
"""


@pytest.fixture
def modules() -> ModulesStructure:
    structure = ModulesStructure()
    structure.upsert_module("core", [], "/static/core/module.js", 1)
    structure.upsert_module("core", None, "/static/core/z_util.js", 2)
    structure.upsert_module("core", None, "/static/core/a_util.js+async", 1)
    structure.upsert_module("app", ["core", "ngRoute"], "/static/app/module.js", 3)
    return structure


def test_build_import_entry_recognizes_types() -> None:
    assert build_import_entry("/a.js") == ImportEntry(src="/a.js", type="js")
    assert build_import_entry("/a.css") == ImportEntry(src="/a.css", type="css")
    assert build_import_entry("/a.js+async") == ImportEntry(
        src="/a.js", type="js", is_async=True
    )


def test_rendered_tags() -> None:
    assert (
        build_import_entry("/a.js+async").render()
        == '<script async type="text/javascript" src="/a.js"></script>'
    )
    assert (
        build_import_entry("/a.css").render()
        == '<link rel="stylesheet" type="text/css" href="/a.css">'
    )


def test_unknown_extension_is_rejected() -> None:
    with pytest.raises(ImportsError, match="Unrecognized file format"):
        build_import_entry("/img/logo.png")


def test_sort_module_files_keeps_declaring_file_first() -> None:
    assert sort_module_files(["m.js", "z.js", "b.js"]) == ["m.js", "b.js", "z.js"]
    assert sort_module_files([]) == []


def test_insert_between_labels_replaces_region() -> None:
    text = "before <!-- s -->old<!-- e --> after"

    result = insert_between_labels("<!-- s -->", "<!-- e -->", "new\n", text, file_path="t")

    assert result == "before <!-- s -->\nnew\n<!-- e --> after"


def test_insert_between_labels_accepts_label_at_start_of_text() -> None:
    result = insert_between_labels("<s>", "<e>", "x\n", "<s><e>", file_path="t")

    assert result == "<s>\nx\n<e>"


def test_missing_label_is_reported() -> None:
    with pytest.raises(ImportsError, match="<!-- e -->' was not found in file t.html"):
        insert_between_labels("<!-- s -->", "<!-- e -->", "", "<!-- s -->", file_path="t.html")


def test_render_template_with_static_list(modules: ModulesStructure) -> None:
    text, root, order = render_template(
        TEMPLATE, modules, ["/lib/angular.js"], file_path="index.html"
    )

    assert root == "app"
    assert order == ["core", "app"]
    expected_block = (
        "<!-- modules js begin -->\n"
        '<script type="text/javascript" src="/lib/angular.js"></script>\n'
        "<!-- module core -->\n"
        '<script type="text/javascript" src="/static/core/module.js"></script>\n'
        '<script async type="text/javascript" src="/static/core/a_util.js"></script>\n'
        '<script type="text/javascript" src="/static/core/z_util.js"></script>\n'
        "<!-- module app -->\n"
        '<script type="text/javascript" src="/static/app/module.js"></script>\n'
        "<!-- modules js end -->"
    )
    assert expected_block in text
    assert "stale content" not in text


def test_static_list_rejects_stylesheets(modules: ModulesStructure) -> None:
    with pytest.raises(ImportsError, match="Static css imports need a named static section"):
        render_template(
            TEMPLATE,
            modules,
            ["/lib/angular.js", {"theme": "/lib/theme.css"}],
            file_path="index.html",
        )


def test_render_template_with_named_sections(modules: ModulesStructure) -> None:
    static = {
        "vendor": [
            "/lib/angular.js",
            {"charts": ["/lib/chart.js", "/lib/chart.css"]},
            ["/lib/a.js", "/lib/b.js"],
        ]
    }

    text, _root, _order = render_template(TEMPLATE, modules, static, file_path="index.html")

    assert (
        "<!-- static js [vendor] begin -->\n"
        '<script type="text/javascript" src="/lib/angular.js"></script>\n'
        "<!-- charts -->\n"
        '<script type="text/javascript" src="/lib/chart.js"></script>\n'
        '<script type="text/javascript" src="/lib/a.js"></script>\n'
        '<script type="text/javascript" src="/lib/b.js"></script>\n'
        "<!-- static js [vendor] end -->"
    ) in text
    assert (
        "<!-- static css [vendor] begin -->\n"
        "<!-- charts -->\n"
        '<link rel="stylesheet" type="text/css" href="/lib/chart.css">\n'
        "<!-- static css [vendor] end -->"
    ) in text
    assert "<!-- modules js begin -->\n<!-- module core -->" in text


def test_template_without_ng_app_is_rejected(modules: ModulesStructure) -> None:
    with pytest.raises(ImportsError, match="ng-app declaration was not found"):
        render_template("<html></html>", modules, [], file_path="index.html")


def test_template_with_unknown_root_module(modules: ModulesStructure) -> None:
    template = TEMPLATE.replace('ng-app="app"', 'ng-app="missing"')

    with pytest.raises(UnknownModuleError, match="declared in file index.html"):
        render_template(template, modules, [], file_path="index.html")


def test_write_imports_reports_size(tmp_path: Path, modules: ModulesStructure) -> None:
    page = tmp_path / "index.html"
    page.write_text(TEMPLATE, encoding="utf-8")

    (report,) = write_imports([page], modules, [])

    assert report.module == "app"
    assert report.load_order == ("core", "app")
    assert report.size == 7
    assert "<!-- module app -->" in page.read_text(encoding="utf-8")


def test_write_imports_is_all_or_nothing(tmp_path: Path, modules: ModulesStructure) -> None:
    good = tmp_path / "good.html"
    bad = tmp_path / "bad.html"
    good.write_text(TEMPLATE, encoding="utf-8")
    bad.write_text('<html ng-app="app"></html>', encoding="utf-8")

    with pytest.raises(ImportsError):
        write_imports([good, bad], modules, [])

    assert good.read_text(encoding="utf-8") == TEMPLATE
