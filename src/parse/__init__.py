"""Parsing utilities for angular module declarations."""

from parse.declarations import (
    ConstructorSpec,
    DeclarationEvent,
    ModuleEvent,
    ProviderEvent,
    extract_declarations,
)

__all__ = [
    "ConstructorSpec",
    "DeclarationEvent",
    "ModuleEvent",
    "ProviderEvent",
    "extract_declarations",
]
