"""
Core components for the application health service.

Provides configuration, data models and the application catalog.
"""

from apphealth.core.catalog import (
    ApplicationCatalog,
    ApplicationDescriptor,
    StaticApplicationCatalog,
)
from apphealth.core.config import Config, load_config, merge_settings, setup_logging
from apphealth.core.models import (
    HEALTHY_MESSAGE,
    CycleOutcome,
    DispatchCategory,
    HealthResult,
)

__all__ = [
    "Config",
    "load_config",
    "merge_settings",
    "setup_logging",
    "ApplicationCatalog",
    "ApplicationDescriptor",
    "StaticApplicationCatalog",
    "HEALTHY_MESSAGE",
    "CycleOutcome",
    "DispatchCategory",
    "HealthResult",
]
