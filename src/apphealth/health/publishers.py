"""
Notification publishers for the health service.

A publisher receives the reported results of a cycle together with its
category. Implementations are selected by name from a registration table
once, at startup; a publisher that can not be built disables notifications
without stopping health checking.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Callable, Optional

import requests

from apphealth.core.config import DEFAULT_CONFIG_DIR, Config, merge_settings
from apphealth.core.models import DispatchCategory, HealthResult

logger = logging.getLogger(__name__)

PublisherFactory = Callable[[dict[str, Any]], "Publisher"]


class PublisherConstructionError(ValueError):
    """Raised when a configured publisher can not be built."""


class Publisher(ABC):
    """Abstract base class for notification publishers."""

    @abstractmethod
    def on_unhealthy_applications(
        self,
        category: DispatchCategory,
        results: dict[str, HealthResult],
    ) -> None:
        """
        Deliver the results of a cycle.

        Args:
            category: DAILY for the digest, ERROR otherwise
            results: Application ids to reported results

        Raises:
            Exception: Any delivery failure
        """
        pass

    def close(self) -> None:
        """Clean up publisher resources."""
        pass


def format_results(
    category: DispatchCategory,
    results: dict[str, HealthResult],
    timestamp: Optional[datetime] = None,
) -> list[str]:
    """
    Render results as one line per application.

    Args:
        category: Dispatch category
        results: Application ids to results
        timestamp: Time printed on each line (default: now)

    Returns:
        Lines sorted by application id
    """
    ts = (timestamp or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    label = category.value.upper()
    if not results:
        return [f"[{ts}] [{label}] No applications to report"]
    return [
        f"[{ts}] [{label}] {app_id}: {result.status_char} {result.describe()}"
        for app_id, result in sorted(results.items())
    ]


class LogPublisher(Publisher):
    """Publisher that appends to a log file."""

    def __init__(self, log_path: Path):
        """
        Initialize log publisher.

        Args:
            log_path: Path to the notification log file
        """
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "LogPublisher":
        return cls(Path(settings.get("log_path", DEFAULT_CONFIG_DIR / "health.log")))

    def on_unhealthy_applications(self, category, results) -> None:
        with open(self.log_path, "a") as f:
            for line in format_results(category, results):
                f.write(line + "\n")


class ConsolePublisher(Publisher):
    """Publisher that prints to the console."""

    COLORS = {
        True: "\033[32m",  # Green
        False: "\033[31m",  # Red
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        self.color = color

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "ConsolePublisher":
        return cls(color=bool(settings.get("color", True)))

    def on_unhealthy_applications(self, category, results) -> None:
        lines = format_results(category, results)
        if not self.color or not results:
            for line in lines:
                print(line)
            return
        ordered = [results[app_id] for app_id in sorted(results)]
        for line, result in zip(lines, ordered):
            print(f"{self.COLORS[result.healthy]}{line}{self.RESET}")


class EmailPublisher(Publisher):
    """Publisher that sends a plain-text email over SMTP."""

    def __init__(
        self,
        recipients: list[str],
        smtp_host: str = "localhost",
        smtp_port: int = 25,
        sender: str = "apphealth@localhost",
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        subject: str = "Application health check",
        timeout: float = 30.0,
    ):
        """
        Initialize email publisher.

        Args:
            recipients: Destination addresses
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            sender: From address
            smtp_user: Login user; STARTTLS and login are used when set
            smtp_password: Login password
            subject: Subject text, prefixed with the category
            timeout: SMTP connection timeout in seconds
        """
        if not recipients:
            raise ValueError("EmailPublisher needs at least one recipient")
        self.recipients = recipients
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.sender = sender
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.subject = subject
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "EmailPublisher":
        recipients = settings.get("recipients") or []
        if isinstance(recipients, str):
            recipients = [r.strip() for r in recipients.split(",") if r.strip()]
        return cls(
            recipients=list(recipients),
            smtp_host=settings.get("smtp_host", "localhost"),
            smtp_port=int(settings.get("smtp_port", 25)),
            sender=settings.get("sender", "apphealth@localhost"),
            smtp_user=settings.get("smtp_user"),
            smtp_password=settings.get("smtp_password"),
            subject=settings.get("subject", "Application health check"),
            timeout=float(settings.get("timeout", 30.0)),
        )

    def build_message(self, category, results) -> MIMEText:
        """Build the notification email."""
        unhealthy = sum(1 for r in results.values() if not r.healthy)
        body = "\n".join(
            [
                f"Health check report ({category.value})",
                f"{len(results)} application(s) reported, {unhealthy} unhealthy.",
                "",
                *format_results(category, results),
                "",
                "---",
                "This is an automated message from the application health service.",
            ]
        )
        msg = MIMEText(body, "plain")
        msg["From"] = self.sender
        msg["To"] = ", ".join(self.recipients)
        msg["Subject"] = f"{category.subject_prefix}{self.subject}"
        return msg

    def on_unhealthy_applications(self, category, results) -> None:
        msg = self.build_message(category, results)
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            if self.smtp_user and self.smtp_password:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
            server.sendmail(self.sender, self.recipients, msg.as_string())
        logger.info(f"Sent {category.value} health report to {', '.join(self.recipients)}")


class SlackPublisher(Publisher):
    """Publisher that posts to a Slack incoming webhook."""

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        if not webhook_url:
            raise ValueError("SlackPublisher needs a webhook_url")
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._session = requests.Session()

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "SlackPublisher":
        return cls(
            webhook_url=settings.get("webhook_url", ""),
            timeout=float(settings.get("timeout", 10.0)),
        )

    def build_payload(self, category, results) -> dict[str, Any]:
        """Build the webhook JSON payload."""
        healthy = all(r.healthy for r in results.values())
        return {
            "username": "Application Health",
            "text": f"*{category.subject_prefix}Application health check*",
            "attachments": [
                {
                    "color": "#36a64f" if healthy else "#ff0000",
                    "text": "\n".join(format_results(category, results)),
                    "footer": "apphealth",
                }
            ],
        }

    def on_unhealthy_applications(self, category, results) -> None:
        response = self._session.post(
            self.webhook_url,
            json=self.build_payload(category, results),
            timeout=self.timeout,
        )
        response.raise_for_status()

    def close(self) -> None:
        self._session.close()


PUBLISHERS: dict[str, PublisherFactory] = {
    "log": LogPublisher.from_settings,
    "console": ConsolePublisher.from_settings,
    "email": EmailPublisher.from_settings,
    "slack": SlackPublisher.from_settings,
}


def register_publisher(name: str, factory: PublisherFactory) -> None:
    """
    Make a publisher implementation selectable by name.

    Args:
        name: Name used in the ``publisher.impl`` setting
        factory: Callable taking merged settings and returning a Publisher
    """
    PUBLISHERS[name] = factory


def available_publishers() -> list[str]:
    """Names of selectable publisher implementations."""
    return sorted(PUBLISHERS)


def create_publisher(name: str, settings: dict[str, Any]) -> Publisher:
    """
    Factory function to create a publisher by name.

    Args:
        name: Registered publisher name
        settings: Merged publisher settings

    Returns:
        Publisher instance

    Raises:
        PublisherConstructionError: If the name is unknown or the factory
            does not produce a Publisher
    """
    factory = PUBLISHERS.get(name)
    if factory is None:
        raise PublisherConstructionError(f"Unsupported publisher: {name}")

    publisher = factory(settings)
    if not isinstance(publisher, Publisher):
        raise PublisherConstructionError(
            f"Publisher {name} built {type(publisher).__name__}, not a Publisher"
        )
    return publisher


def resolve_publisher(config: Config) -> Optional[Publisher]:
    """
    Build the configured publisher, if any.

    Publisher settings are overlaid on the service-wide settings. Any
    failure is logged and results in no publisher.

    Args:
        config: Service configuration

    Returns:
        The publisher, or None when disabled or not buildable
    """
    if not config.publisher.enabled or not config.publisher.impl:
        return None

    settings = merge_settings(config.publisher.settings, config.service.as_settings())
    try:
        publisher = create_publisher(config.publisher.impl, settings)
    except Exception as e:
        logger.warning(
            f"Failed to create publisher {config.publisher.impl!r}, "
            f"notifications disabled: {e}"
        )
        return None

    logger.info(f"Using {config.publisher.impl} publisher for health notifications")
    return publisher
