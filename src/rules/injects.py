"""Cross-module inject validation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graph.builder import ModulesStructure
    from rules.config import ProviderCollision

logger = logging.getLogger(__name__)


class ProviderCollisionError(Exception):
    """Raised when two modules register a provider under the same name."""

    def __init__(self, provider: str, first_module: str, second_module: str) -> None:
        self.provider = provider
        self.modules = (first_module, second_module)
        super().__init__(
            f"Provider {provider} is declared in modules {first_module} "
            f"and {second_module}"
        )


def build_provider_index(
    modules: ModulesStructure,
    *,
    on_collision: ProviderCollision = "warn",
) -> dict[str, str]:
    """Map each provider name to the module that owns it.

    When several modules register the same name the last one wins, unless
    ``on_collision`` is ``"error"``.
    """
    index: dict[str, str] = {}
    for module_name in modules:
        for provider in modules[module_name].providers:
            owner = index.get(provider.name)
            if owner is not None and owner != module_name:
                if on_collision == "error":
                    raise ProviderCollisionError(provider.name, owner, module_name)
                if on_collision == "warn":
                    logger.warning(
                        "Provider %s is declared in modules %s and %s; "
                        "inject checks use %s",
                        provider.name,
                        owner,
                        module_name,
                        module_name,
                    )
            index[provider.name] = module_name
    return index


def validate_injects(
    modules: ModulesStructure,
    *,
    on_collision: ProviderCollision = "warn",
) -> list[str]:
    """Check that every injected provider comes from a declared dependency.

    Returns:
        One message per (module, provider, inject) whose inject belongs to
        another module that the injecting module does not list among its
        dependencies. Injects no scanned module provides are ignored.

    Raises:
        ProviderCollisionError: If ``on_collision`` is ``"error"`` and a
            provider name is registered by two modules.
    """
    module_by_provider = build_provider_index(modules, on_collision=on_collision)

    errors: list[str] = []
    for module_name in modules:
        module = modules[module_name]
        for provider in module.providers:
            for inject in provider.injects:
                owner = module_by_provider.get(inject)
                if owner is None or owner == module_name:
                    continue
                if owner in module.dependencies:
                    continue
                errors.append(
                    f"Module {module_name} has provider {provider.name} which "
                    f"injects {inject} defined in {owner}, but module "
                    f"{module_name} does not depend on module {owner} explicitly"
                )
    return errors


__all__ = ["ProviderCollisionError", "build_provider_index", "validate_injects"]
