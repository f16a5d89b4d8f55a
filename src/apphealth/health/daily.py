"""
Daily digest policy.

Decides whether a tick is the once-a-day digest cycle. The digest is armed
whenever a tick falls outside the configured hour and fires on the first tick
inside it; it stays armed until a dispatch succeeds.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


class DailyDigestPolicy:
    """Tracks whether today's digest has been sent."""

    def __init__(self, send_hour: int, tz_name: str = "UTC"):
        """
        Initialize daily digest policy.

        Args:
            send_hour: Hour of day (0-23) the digest is sent
            tz_name: IANA time zone the hour is interpreted in

        Raises:
            ValueError: If send_hour is out of range
            ZoneInfoNotFoundError: If the time zone is unknown
        """
        if not 0 <= send_hour <= 23:
            raise ValueError(f"Daily send hour must be between 0 and 23, got {send_hour}")
        self.send_hour = send_hour
        self.timezone = ZoneInfo(tz_name)
        self.has_sent_today = False

    def hour_of(self, now: datetime) -> int:
        """Hour of ``now`` in the configured time zone; naive times are UTC."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.timezone).hour

    def classify(self, now: datetime) -> bool:
        """
        Classify a tick.

        Args:
            now: Current time

        Returns:
            True if this tick should send the daily digest
        """
        in_window = self.hour_of(now) == self.send_hour
        if not in_window:
            self.has_sent_today = False
            return False
        return not self.has_sent_today

    def mark_sent(self) -> None:
        """Record a successful digest dispatch."""
        self.has_sent_today = True
