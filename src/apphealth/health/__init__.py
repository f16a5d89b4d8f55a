"""
Health monitoring module for the application health service.

Provides the probe registry, evaluation, daily digest policy, publishers
and the scheduling daemon.
"""

from apphealth.health.daemon import HealthCheckDaemon, create_daemon, format_outcome_table
from apphealth.health.daily import DailyDigestPolicy
from apphealth.health.evaluator import Evaluator
from apphealth.health.probes import HealthProbe, ProbeProvider, ProbeProviderRegistry
from apphealth.health.publishers import (
    ConsolePublisher,
    EmailPublisher,
    LogPublisher,
    Publisher,
    PublisherConstructionError,
    SlackPublisher,
    available_publishers,
    create_publisher,
    register_publisher,
    resolve_publisher,
)
from apphealth.health.registry import HealthCheckSurface, ProbeRegistry

__all__ = [
    # Probes
    "HealthProbe",
    "ProbeProvider",
    "ProbeProviderRegistry",
    # Registry
    "HealthCheckSurface",
    "ProbeRegistry",
    # Evaluation
    "Evaluator",
    "DailyDigestPolicy",
    # Publishers
    "Publisher",
    "PublisherConstructionError",
    "LogPublisher",
    "ConsolePublisher",
    "EmailPublisher",
    "SlackPublisher",
    "available_publishers",
    "create_publisher",
    "register_publisher",
    "resolve_publisher",
    # Daemon
    "HealthCheckDaemon",
    "create_daemon",
    "format_outcome_table",
]
