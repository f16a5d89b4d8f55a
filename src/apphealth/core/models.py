"""
Data models for the application health service.

Defines health results, per-cycle outcomes and dispatch categories.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

HEALTHY_MESSAGE = "OK"


class DispatchCategory(str, Enum):
    """Category label attached to every publisher dispatch."""

    DAILY = "daily"
    ERROR = "error"

    @property
    def subject_prefix(self) -> str:
        """Prefix used in notification subjects."""
        return f"[{self.value.upper()}] - "


@dataclass(frozen=True)
class HealthResult:
    """Verdict produced by a single probe execution."""

    healthy: bool
    message: Optional[str] = None
    error: Optional[BaseException] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, message: Optional[str] = None) -> "HealthResult":
        """Build a healthy result."""
        return cls(healthy=True, message=message)

    @classmethod
    def failed(
        cls,
        message: Optional[str] = None,
        error: Optional[BaseException] = None,
    ) -> "HealthResult":
        """Build an unhealthy result, defaulting the message to the error text."""
        if message is None and error is not None:
            message = str(error) or error.__class__.__name__
        return cls(healthy=False, message=message, error=error)

    @property
    def status_char(self) -> str:
        """Get single character status indicator."""
        if self.healthy:
            return "\u2713"  # checkmark
        return "\u2717"  # X mark

    def describe(self) -> str:
        """One-line human readable description."""
        text = self.message or ("healthy" if self.healthy else "unhealthy")
        if self.error is not None and str(self.error) not in text:
            text += f" ({self.error.__class__.__name__}: {self.error})"
        return text


@dataclass
class CycleOutcome:
    """Results of one scheduler tick, handed to the publisher then discarded."""

    is_daily: bool
    timestamp: datetime
    hour: int
    results: dict[str, HealthResult] = field(default_factory=dict)

    @property
    def category(self) -> DispatchCategory:
        """Dispatch category for this cycle."""
        return DispatchCategory.DAILY if self.is_daily else DispatchCategory.ERROR

    @property
    def unhealthy(self) -> dict[str, HealthResult]:
        """Subset of results that are unhealthy."""
        return {app_id: r for app_id, r in self.results.items() if not r.healthy}

    @property
    def should_dispatch(self) -> bool:
        """Whether a bound publisher is called for this cycle."""
        return self.is_daily or bool(self.results)
