"""
Probe capabilities for the health service.

A probe produces a HealthResult for one application. Probes are built by a
provider keyed by application type; this module defines both contracts and a
table-driven provider that hosts populate at startup.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from apphealth.core.models import HealthResult

logger = logging.getLogger(__name__)

ProbeFactory = Callable[[dict[str, Any]], Optional["HealthProbe"]]


class HealthProbe(ABC):
    """Abstract base class for application health probes."""

    @abstractmethod
    def execute(self) -> HealthResult:
        """
        Evaluate the application.

        Returns:
            HealthResult describing the application state
        """
        pass


class ProbeProvider(ABC):
    """Builds probes for application types."""

    @abstractmethod
    def get_probe_for(
        self, app_type: str, config: dict[str, Any]
    ) -> Optional[HealthProbe]:
        """
        Build a probe for an application.

        Args:
            app_type: Application type identifier
            config: Merged application configuration

        Returns:
            A probe, or None if the type does not support health checking
        """
        pass


class ProbeProviderRegistry(ProbeProvider):
    """Provider backed by an application type -> factory table."""

    def __init__(self):
        self._factories: dict[str, ProbeFactory] = {}

    def register(self, app_type: str, factory: ProbeFactory) -> None:
        """
        Register the probe factory for an application type.

        Args:
            app_type: Application type identifier
            factory: Callable taking the merged config, returning a probe or None
        """
        if app_type in self._factories:
            logger.info(f"Replacing probe factory for type {app_type}")
        self._factories[app_type] = factory

    def unregister(self, app_type: str) -> None:
        """Remove the factory for an application type, if any."""
        self._factories.pop(app_type, None)

    def supported_types(self) -> list[str]:
        """Application types with a registered factory."""
        return sorted(self._factories)

    def get_probe_for(
        self, app_type: str, config: dict[str, Any]
    ) -> Optional[HealthProbe]:
        factory = self._factories.get(app_type)
        if factory is None:
            return None
        return factory(config)
