from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Union

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILENAME = "ngbundle.toml"

ProviderCollision = Literal["last_wins", "warn", "error"]

# "app.js", ["a.js", "b.css"] or {"comment": "a.js" | ["a.js", ...]}
StaticImportEntry = Union[str, list[str], dict[str, Union[str, list[str]]]]
StaticImportConfig = list[StaticImportEntry]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class SourceDirConfig(_StrictModel):
    """One source root to scan for module declarations."""

    dir: str = Field(description="Directory with .js files, relative to the config")
    mapping: dict[str, str] = Field(
        default_factory=dict,
        description="Single {from: to} replacement applied to scanned file names",
    )

    @field_validator("dir")
    @classmethod
    def validate_dir(cls, v: str) -> str:
        if not v:
            msg = "Directory path is missing"
            raise ValueError(msg)
        return v

    @field_validator("mapping")
    @classmethod
    def validate_mapping(cls, v: dict[str, str]) -> dict[str, str]:
        if len(v) > 1:
            msg = "Wrong file path mapping - expected object with 1 field"
            raise ValueError(msg)
        return v


class BundleConfig(_StrictModel):
    """Configuration for one bundling run."""

    js: list[SourceDirConfig] = Field(
        description="Source roots, scanned in order",
    )
    html: list[str] = Field(
        description="Template files whose import labels are rewritten",
    )
    static: StaticImportConfig | dict[str, StaticImportConfig] = Field(
        default_factory=list,
        description=(
            "Static imports: a list rendered before module imports, or named "
            "lists rendered between 'static js/css [name]' labels"
        ),
    )
    validate_provider_constructor: bool = Field(
        default=True,
        description="Report provider constructors that are not minify-ready",
    )
    provider_collision: ProviderCollision = Field(
        default="warn",
        description="How inject validation treats one provider name in two modules",
    )
    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to include (empty = all .js files)",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    respect_gitignore: bool = Field(
        default=False,
        description="Skip source files ignored by .gitignore (default: scan all .js files)",
    )
    nested_gitignore: bool = Field(
        default=False,
        description=(
            "With respect_gitignore, enable nested .gitignore composition "
            "(default: false for root-only)"
        ),
    )

    @field_validator("static", mode="before")
    @classmethod
    def validate_static(cls, v: Any) -> Any:
        """Reject static import sections that are neither list nor mapping.

        Note: this runs in `mode="before"` so the error names the raw value
        instead of listing every union branch.
        """
        if v is None:
            return []
        if not isinstance(v, (list, dict)):
            msg = "Wrong 'static' format - expected object or array"
            raise ValueError(msg)
        return v


class ConfigError(Exception):
    """Raised when a config file is missing or cannot be parsed."""


def resolve_config_path(root: Path, config_path: str | Path | None = None) -> Path:
    """Return the config file path, defaulting to ngbundle.toml under root."""
    if config_path is None:
        return root / CONFIG_FILENAME
    path = Path(config_path).expanduser()
    if not path.is_absolute():
        path = root / path
    return path


def load_config(root: Path, config_path: str | Path | None = None) -> BundleConfig:
    """Load and validate a bundle configuration file."""
    path = resolve_config_path(root, config_path)

    if not path.is_file():
        msg = f"Config file not found: {path}"
        raise ConfigError(msg)

    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e

    try:
        return BundleConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {path}: {e}"
        raise ConfigError(msg) from e
