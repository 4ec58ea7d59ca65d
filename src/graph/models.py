"""Module graph models.

These are the records the builder accumulates and the exports serialize.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

DiagnosticKind = Literal[
    "not_minify_ready",
    "orphan_provider",
    "duplicate_provider",
    "missing_get",
]


class ProviderConfig(BaseModel):
    """A provider-like registration owned by exactly one module."""

    name: str
    kind: str = "provider"
    injects: list[str] = Field(default_factory=list)


class ModuleConfig(BaseModel):
    """Everything collected about one angular module."""

    dependencies: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    size: int = 0
    providers: list[ProviderConfig] = Field(default_factory=list)

    def provider(self, name: str) -> ProviderConfig | None:
        return next((p for p in self.providers if p.name == name), None)


@dataclass(frozen=True)
class BuildDiagnostic:
    kind: DiagnosticKind
    message: str
    file: str
    line: int | None = None
    module: str | None = None
    provider: str | None = None

    def location(self) -> str:
        if self.line is None:
            return self.file
        return f"{self.file}:{self.line}"


__all__ = ["BuildDiagnostic", "DiagnosticKind", "ModuleConfig", "ProviderConfig"]
