"""Command-line interface for ngbundle."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from artifacts import write_exports
from bundler import Bundle, create_bundle
from graph.algos import (
    CircularDependencyError,
    UnknownModuleError,
    resolve_dependencies,
)
from imports.writer import ImportsError
from rules.config import ConfigError, load_config, resolve_config_path
from rules.injects import ProviderCollisionError

LOG_FORMAT = "%(levelname)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

logger = logging.getLogger(__name__)


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root (default: .)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config file, relative to root (default: ngbundle.toml)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=LOG_LEVELS,
        help="Console log level (default: INFO)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ngbundle")
    subparsers = parser.add_subparsers(dest="command", required=True)

    write_parser = subparsers.add_parser(
        "write", help="Write module import tags into templates"
    )
    _add_common_args(write_parser)
    write_parser.add_argument(
        "--validate-injects",
        action="store_true",
        help="Warn when a provider injects a service from an undeclared module",
    )
    write_parser.add_argument(
        "--make-json",
        action="store_true",
        help="Write <config>.modules.json with the modules structure",
    )
    write_parser.add_argument(
        "--make-dot",
        action="store_true",
        help="Write <config>.dot with the modules dependency diagram",
    )

    validate_parser = subparsers.add_parser(
        "validate", help="Load and validate modules without writing templates"
    )
    _add_common_args(validate_parser)
    validate_parser.add_argument(
        "--validate-injects",
        action="store_true",
        help="Fail when a provider injects a service from an undeclared module",
    )
    validate_parser.add_argument(
        "--strict",
        action="store_true",
        help="Also fail on provider declaration problems found while scanning",
    )

    resolve_parser = subparsers.add_parser(
        "resolve", help="Print the load order of a module"
    )
    resolve_parser.add_argument("module", help="Root module name")
    _add_common_args(resolve_parser)

    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(getattr(logging, level))


def _load_bundle(root: Path, config: str | None) -> Bundle:
    config_path = resolve_config_path(root, config)
    bundle_config = load_config(root, config)
    return create_bundle(bundle_config, config_path.parent)


def _handle_write(
    root: Path,
    config: str | None,
    *,
    check_injects: bool,
    make_json: bool,
    make_dot: bool,
) -> int:
    bundle = _load_bundle(root, config)

    circular = bundle.find_circular_reference()
    if circular:
        logger.warning("Found circular reference: %s", " -> ".join(circular))

    if check_injects:
        for error in bundle.validate_injects():
            logger.warning(error)

    bundle.write_imports()

    write_exports(
        resolve_config_path(root, config),
        bundle.modules,
        make_json=make_json,
        make_dot=make_dot,
    )
    return 0


def _handle_validate(
    root: Path,
    config: str | None,
    *,
    check_injects: bool,
    strict: bool,
) -> int:
    bundle = _load_bundle(root, config)
    failed = False

    circular = bundle.find_circular_reference()
    if circular:
        sys.stderr.write(f"Found circular reference: {' -> '.join(circular)}\n")
        failed = True

    if check_injects:
        for error in bundle.validate_injects():
            sys.stderr.write(f"{error}\n")
            failed = True

    if strict:
        for diagnostic in bundle.modules.diagnostics:
            sys.stderr.write(f"{diagnostic.location()}: {diagnostic.message}\n")
            failed = True

    return 1 if failed else 0


def _handle_resolve(root: Path, config: str | None, module: str) -> int:
    bundle = _load_bundle(root, config)
    for name in resolve_dependencies(module, bundle.modules):
        sys.stdout.write(f"{name}\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    root = Path(args.root).expanduser().resolve()

    try:
        if args.command == "write":
            return _handle_write(
                root,
                args.config,
                check_injects=args.validate_injects,
                make_json=args.make_json,
                make_dot=args.make_dot,
            )

        if args.command == "validate":
            return _handle_validate(
                root,
                args.config,
                check_injects=args.validate_injects,
                strict=args.strict,
            )

        if args.command == "resolve":
            return _handle_resolve(root, args.config, args.module)
    except (ConfigError, NotADirectoryError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2
    except (
        CircularDependencyError,
        UnknownModuleError,
        ImportsError,
        ProviderCollisionError,
    ) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
