# core/registry.py: Module registry
#
# Each app instance owns one registry. Modules advertise the interfaces they
# implement (the inventory module provides "inventory_storage") and declare the
# ones they need; create_app() checks the two lists agree before serving.

import logging
from typing import Any, Optional

log = logging.getLogger("inventory.registry")


class ModuleRegistry:
    """
    Interface name -> provider object, plus the REQUIRES declarations
    collected while modules load.
    """

    def __init__(self):
        self._providers: dict[str, Any] = {}
        self._declared_requires: list[tuple[str, str]] = []  # (module_id, interface)
        self._modules: list[str] = []

    def register_module(self, module_id: str, requires: list[str]) -> None:
        """Remember a loaded module and what it needs."""
        self._modules.append(module_id)
        for iface in requires:
            self._declared_requires.append((module_id, iface))

    def register_provider(self, interface_name: str, impl: Any) -> None:
        """Last writer wins; replacing a different object is logged."""
        existing = self._providers.get(interface_name)
        if existing is not None and existing is not impl:
            log.warning(
                f"Interface '{interface_name}' was provided by {type(existing).__name__}; "
                f"replacing with {type(impl).__name__}"
            )
        self._providers[interface_name] = impl
        log.debug(f"Registered provider for '{interface_name}': {type(impl).__name__}")

    def get_provider(self, interface_name: str) -> Optional[Any]:
        provider = self._providers.get(interface_name)
        if provider is None:
            log.warning(f"No provider registered for interface '{interface_name}'")
        return provider

    def missing_dependencies(self) -> list[tuple[str, str]]:
        return [
            (module_id, iface)
            for module_id, iface in self._declared_requires
            if iface not in self._providers
        ]

    def validate_dependencies(self) -> bool:
        """True when every declared requirement has a provider. Logs each gap."""
        missing = self.missing_dependencies()
        for module_id, iface in missing:
            log.error(f"Module '{module_id}' requires '{iface}' but nothing provides it")
        if not missing:
            log.info(
                f"Module dependencies satisfied for {self._modules} "
                f"({len(self._declared_requires)} declarations)"
            )
        return not missing

    @property
    def modules(self) -> list[str]:
        return list(self._modules)

    @property
    def providers(self) -> dict[str, Any]:
        return dict(self._providers)
