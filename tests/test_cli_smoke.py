from __future__ import annotations

import shutil
from pathlib import Path

import orjson
import pytest

from cli import main


def _copy_mini_app_fixture(root: Path) -> None:
    fixture_app = Path(__file__).parent / "fixtures" / "mini_app"
    shutil.copytree(fixture_app, root)


def _add_source(root: Path, rel_path: str, content: str) -> None:
    path = root / "app" / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_cli_write_renders_load_order(tmp_path: Path) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)

    exit_code = main(["write", str(app_root)])

    assert exit_code == 0
    page = (app_root / "index.html").read_text(encoding="utf-8")
    expected_block = (
        "<!-- modules js begin -->\n"
        '<script type="text/javascript" src="lib/angular.js"></script>\n'
        "<!-- module core -->\n"
        '<script type="text/javascript" src="/static/core/module.js"></script>\n'
        '<script type="text/javascript" src="/static/core/logger.js"></script>\n'
        "<!-- module feature -->\n"
        '<script type="text/javascript" src="/static/feature/module.js"></script>\n'
        "<!-- module main -->\n"
        '<script type="text/javascript" src="/static/main.js"></script>\n'
        "<!-- modules js end -->"
    )
    assert expected_block in page
    assert "broken" not in page
    assert not (app_root / "ngbundle.modules.json").exists()


def test_cli_write_is_repeatable(tmp_path: Path) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)

    assert main(["write", str(app_root)]) == 0
    first = (app_root / "index.html").read_text(encoding="utf-8")
    assert main(["write", str(app_root)]) == 0

    assert (app_root / "index.html").read_text(encoding="utf-8") == first


def test_cli_write_exports(tmp_path: Path) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)

    exit_code = main(["write", str(app_root), "--make-json", "--make-dot"])

    assert exit_code == 0
    structure = orjson.loads((app_root / "ngbundle.modules.json").read_bytes())
    assert list(structure) == ["core", "feature", "main"]
    assert structure["main"]["dependencies"] == ["feature", "core", "ngRoute"]
    assert structure["core"]["providers"] == [
        {"name": "logger", "kind": "factory", "injects": ["$log"]}
    ]
    dot = (app_root / "ngbundle.dot").read_text(encoding="utf-8")
    assert '\t"main" -> "feature";' in dot
    assert '"ngRoute"' not in dot


def test_cli_resolve_prints_load_order(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)

    exit_code = main(["resolve", "main", str(app_root)])

    assert exit_code == 0
    assert capsys.readouterr().out.splitlines() == ["core", "feature"]


def test_cli_resolve_unknown_module(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)

    exit_code = main(["resolve", "nope", str(app_root)])

    assert exit_code == 1
    assert "Module nope was not found" in capsys.readouterr().err


def test_cli_validate_clean_app(tmp_path: Path) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)

    assert main(["validate", str(app_root), "--validate-injects", "--strict"]) == 0


def test_cli_validate_reports_undeclared_inject(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)
    _add_source(
        app_root,
        "reports/module.js",
        "angular.module('reports', []).service('report', ['logger', function (l) {}]);\n",
    )

    assert main(["validate", str(app_root)]) == 0
    exit_code = main(["validate", str(app_root), "--validate-injects"])

    assert exit_code == 1
    assert (
        "Module reports has provider report which injects logger defined in core"
        in capsys.readouterr().err
    )


def test_cli_validate_strict_reports_scan_diagnostics(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)
    _add_source(
        app_root,
        "core/unsafe.js",
        "angular.module('core').factory('unsafe', function ($http) {});\n",
    )

    exit_code = main(["validate", str(app_root), "--strict"])

    assert exit_code == 1
    err = capsys.readouterr().err
    assert "/static/core/unsafe.js:1: " in err
    assert "Possible name is unsafe" in err


def test_cli_circular_dependency_fails_write(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)
    original_page = (app_root / "index.html").read_text(encoding="utf-8")
    _add_source(app_root, "core/module.js", "angular.module('core', ['main']);\n")

    assert main(["validate", str(app_root)]) == 1
    assert "Found circular reference: core -> main -> feature -> core" in (
        capsys.readouterr().err
    )
    exit_code = main(["write", str(app_root)])

    assert exit_code == 1
    assert "found circular dependency" in capsys.readouterr().err
    assert (app_root / "index.html").read_text(encoding="utf-8") == original_page


def test_cli_missing_config_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = main(["write", str(tmp_path)])

    assert exit_code == 2
    assert "Config file not found" in capsys.readouterr().err


def test_cli_missing_source_dir_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    app_root = tmp_path / "app_root"
    _copy_mini_app_fixture(app_root)
    shutil.rmtree(app_root / "app")

    exit_code = main(["validate", str(app_root)])

    assert exit_code == 2
    assert "Source directory does not exist" in capsys.readouterr().err
