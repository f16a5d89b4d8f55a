"""
Application catalog for the health service.

The catalog answers "which applications exist"; the daemon reads it on every
tick to pick up newly added applications.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from apphealth.core.config import Config


@dataclass
class ApplicationDescriptor:
    """An application known to the catalog."""

    id: str
    type: str
    context: dict[str, Any] = field(default_factory=dict)
    configuration: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApplicationDescriptor":
        """Create ApplicationDescriptor from dictionary."""
        if not data.get("id") or not data.get("type"):
            raise ValueError(f"Application entry needs 'id' and 'type': {data!r}")
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            context=dict(data.get("context") or {}),
            configuration=dict(data.get("configuration") or {}),
        )


class ApplicationCatalog(ABC):
    """Abstract source of application descriptors."""

    @abstractmethod
    def list_all(self) -> list[ApplicationDescriptor]:
        """
        List every known application.

        Returns:
            Application descriptors, in no particular order
        """
        pass


class StaticApplicationCatalog(ApplicationCatalog):
    """In-memory catalog, typically populated from configuration."""

    def __init__(self, applications: Optional[Iterable[ApplicationDescriptor]] = None):
        self._lock = threading.Lock()
        self._applications: dict[str, ApplicationDescriptor] = {}
        for app in applications or []:
            self.add(app)

    @classmethod
    def from_config(cls, config: Config) -> "StaticApplicationCatalog":
        """Build a catalog from the ``applications`` configuration list."""
        return cls(ApplicationDescriptor.from_dict(entry) for entry in config.applications)

    def add(self, application: ApplicationDescriptor) -> None:
        """Add or replace an application."""
        with self._lock:
            self._applications[application.id] = application

    def remove(self, app_id: str) -> Optional[ApplicationDescriptor]:
        """Remove an application, returning it if it was present."""
        with self._lock:
            return self._applications.pop(app_id, None)

    def list_all(self) -> list[ApplicationDescriptor]:
        with self._lock:
            return list(self._applications.values())
