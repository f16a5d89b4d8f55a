"""
Probe registry for the health service.

Holds the application id -> probe mapping behind a single lock and mirrors
every membership change to the externally visible health-check surface.
"""

import logging
import threading
from types import MappingProxyType
from typing import Mapping, Optional

from apphealth.core.models import HealthResult
from apphealth.health.probes import HealthProbe

logger = logging.getLogger(__name__)


class HealthCheckSurface:
    """
    Externally visible set of health checks owned by the host.

    Hosts expose this through their own status endpoint; the registry keeps
    it in step with its own membership.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._checks: dict[str, HealthProbe] = {}

    def register(self, name: str, probe: HealthProbe) -> None:
        """Expose a probe under a name, replacing any previous one."""
        with self._lock:
            self._checks[name] = probe

    def unregister(self, name: str) -> None:
        """Stop exposing a probe. No error if absent."""
        with self._lock:
            self._checks.pop(name, None)

    def get(self, name: str) -> Optional[HealthProbe]:
        with self._lock:
            return self._checks.get(name)

    def names(self) -> list[str]:
        """Sorted names of exposed checks."""
        with self._lock:
            return sorted(self._checks)

    def run_health_checks(self) -> dict[str, HealthResult]:
        """
        Execute every exposed check.

        Returns:
            Dictionary of check names to results; exceptions become unhealthy results
        """
        with self._lock:
            checks = dict(self._checks)

        results = {}
        for name in sorted(checks):
            try:
                results[name] = checks[name].execute()
            except Exception as e:
                results[name] = HealthResult.failed(error=e)
        return results


class ProbeRegistry:
    """Concurrency-safe mapping from application id to its probe."""

    def __init__(self, surface: Optional[HealthCheckSurface] = None):
        """
        Initialize probe registry.

        Args:
            surface: External health-check surface; registration is refused
                until one is attached
        """
        self._lock = threading.Lock()
        self._probes: dict[str, HealthProbe] = {}
        self.surface = surface

    def attach_surface(self, surface: HealthCheckSurface) -> None:
        """Attach the host's health-check surface once it is available."""
        self.surface = surface

    @property
    def is_ready(self) -> bool:
        """Whether the host environment is available."""
        return self.surface is not None

    def register(self, app_id: str, probe: Optional[HealthProbe]) -> bool:
        """
        Register a probe for an application.

        First registration wins; registering an existing id again is a no-op.

        Args:
            app_id: Application identifier
            probe: Probe for the application, None if unsupported

        Returns:
            True if a new entry was inserted
        """
        if probe is None:
            logger.warning(f"Application {app_id} does not provide a health check")
            return False
        if self.surface is None:
            logger.warning(f"Health check surface unavailable, can not register {app_id}")
            return False

        with self._lock:
            if app_id in self._probes:
                logger.debug(f"Health check for {app_id} already registered")
                return False
            self.surface.register(app_id, probe)
            self._probes[app_id] = probe

        logger.info(f"Successfully registered health check for {app_id}")
        return True

    def unregister(self, app_id: str) -> bool:
        """
        Remove the probe for an application.

        Args:
            app_id: Application identifier

        Returns:
            True if an entry was removed
        """
        if self.surface is None:
            logger.warning(f"Health check surface unavailable, can not unregister {app_id}")
            return False

        with self._lock:
            self.surface.unregister(app_id)
            removed = self._probes.pop(app_id, None) is not None

        logger.info(f"Successfully unregistered health check for {app_id}")
        return removed

    def snapshot(self) -> Mapping[str, HealthProbe]:
        """Read-only point-in-time copy of the registered probes."""
        with self._lock:
            return MappingProxyType(dict(self._probes))

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._probes)

    def __contains__(self, app_id: object) -> bool:
        with self._lock:
            return app_id in self._probes

    def __len__(self) -> int:
        with self._lock:
            return len(self._probes)
