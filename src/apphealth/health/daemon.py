"""
Health check daemon.

Runs the evaluate-and-notify cycle at a fixed rate: refresh the registry from
the application catalog, classify the tick, run every probe and hand the
reported results to the publisher.
"""

import logging
import signal
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from apphealth.core.catalog import (
    ApplicationCatalog,
    ApplicationDescriptor,
    StaticApplicationCatalog,
)
from apphealth.core.config import Config, merge_settings
from apphealth.core.models import CycleOutcome
from apphealth.health.daily import DailyDigestPolicy
from apphealth.health.evaluator import Evaluator
from apphealth.health.probes import ProbeProvider
from apphealth.health.publishers import Publisher, resolve_publisher
from apphealth.health.registry import HealthCheckSurface, ProbeRegistry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthCheckDaemon:
    """
    Daemon that runs periodic application health checks.

    Owns the probe registry, the daily digest state and the publisher
    binding. Ticks run one at a time on the thread that calls start().
    """

    def __init__(
        self,
        config: Config,
        catalog: ApplicationCatalog,
        provider: ProbeProvider,
        publisher: Optional[Publisher] = None,
        registry: Optional[ProbeRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize health check daemon.

        Args:
            config: Service configuration
            catalog: Source of applications to monitor
            provider: Builds probes per application type
            publisher: Notification publisher; resolved from config if None
            registry: Probe registry (default: a new, unattached one)
            clock: Returns the current time (default: UTC now)

        Raises:
            ValueError: If the period is not positive or the send hour is invalid
        """
        if config.health_check.period <= 0:
            raise ValueError(f"Period must be positive, got {config.health_check.period}")
        self.config = config
        self.catalog = catalog
        self.provider = provider
        self.registry = registry if registry is not None else ProbeRegistry()
        self.clock = clock or _utcnow
        self.initial_delay = config.health_check.initial_delay
        self.period = config.health_check.period
        self.evaluator = Evaluator(max_workers=config.health_check.probe_workers)
        self.policy = DailyDigestPolicy(
            config.publisher.daily_send_hour, config.service.timezone
        )
        self.publisher = publisher if publisher is not None else resolve_publisher(config)
        self.last_outcome: Optional[CycleOutcome] = None

        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def init(self, surface: HealthCheckSurface) -> None:
        """
        Attach the host's health-check surface and register all applications.

        Args:
            surface: Externally visible health-check surface
        """
        self.registry.attach_surface(surface)
        self.sync_registry()

    def register_application(self, application: ApplicationDescriptor) -> bool:
        """
        Build and register the probe for an application.

        The probe sees the application context layered over the service
        settings, layered over the application configuration.

        Returns:
            True if a new probe was registered
        """
        if not self.registry.is_ready:
            logger.warning(f"Health check surface unavailable, can not register {application.id}")
            return False

        merged = merge_settings(
            application.context,
            self.config.service.as_settings(),
            application.configuration,
        )
        probe = self.provider.get_probe_for(application.type, merged)
        return self.registry.register(application.id, probe)

    def unregister_application(self, app_id: str) -> bool:
        """Remove an application's probe."""
        return self.registry.unregister(app_id)

    def sync_registry(self) -> int:
        """
        Register catalog applications that are not registered yet.

        Removed applications are left alone; unregistration is driven
        externally.

        Returns:
            Number of newly registered applications
        """
        added = 0
        for application in self.catalog.list_all():
            if application.id in self.registry:
                continue
            try:
                if self.register_application(application):
                    added += 1
            except Exception as e:
                logger.warning(f"Could not build health check for {application.id}: {e}")
        return added

    def run_once(self, now: Optional[datetime] = None) -> CycleOutcome:
        """
        Run a single health check cycle.

        Args:
            now: Time of the tick (default: the daemon clock)

        Returns:
            The cycle's outcome
        """
        now = now or self.clock()
        logger.info("Starting application health check cycle")

        self.sync_registry()
        is_daily = self.policy.classify(now)

        snapshot = self.registry.snapshot()
        results = self.evaluator.evaluate(snapshot, is_daily)

        outcome = CycleOutcome(
            is_daily=is_daily,
            timestamp=now,
            hour=self.policy.hour_of(now),
            results=results,
        )
        self._dispatch(outcome)
        self.last_outcome = outcome
        return outcome

    def _dispatch(self, outcome: CycleOutcome) -> None:
        """Send an outcome to the publisher and record a sent digest."""
        if self.publisher is None:
            return
        if not outcome.should_dispatch:
            logger.debug("All applications healthy, nothing to publish")
            return

        try:
            self.publisher.on_unhealthy_applications(outcome.category, dict(outcome.results))
        except Exception as e:
            logger.warning(
                f"Failed to publish {outcome.category.value} health report: {e}",
                exc_info=True,
            )
            return

        if outcome.is_daily:
            self.policy.mark_sent()

    def tick(self) -> Optional[CycleOutcome]:
        """Run one cycle, logging instead of raising on failure."""
        try:
            start_time = time.monotonic()
            outcome = self.run_once()
            logger.debug(
                f"Health check completed for {len(self.registry)} applications "
                f"in {time.monotonic() - start_time:.2f}s"
            )
            return outcome
        except Exception:
            logger.exception("Error during health check cycle")
            return None

    def start(self, install_signal_handlers: bool = True) -> None:
        """
        Start the daemon loop.

        Runs until stop() is called or SIGTERM/SIGINT is received. The first
        tick runs after the initial delay, later ticks on a fixed-rate grid.

        Args:
            install_signal_handlers: Stop on SIGTERM/SIGINT (main thread only)
        """
        self._running = True
        self._stop_event.clear()

        if install_signal_handlers and threading.current_thread() is threading.main_thread():
            def signal_handler(signum, frame):
                logger.info(f"Received signal {signum}, stopping daemon...")
                self.stop()

            signal.signal(signal.SIGTERM, signal_handler)
            signal.signal(signal.SIGINT, signal_handler)

        self._run_loop()

    def _run_loop(self) -> None:
        """Fixed-rate tick loop; ticks never overlap."""
        logger.info(
            f"Starting health check daemon: initial delay {self.initial_delay}s, "
            f"period {self.period}s"
        )

        next_run = time.monotonic() + self.initial_delay
        while self._running:
            delay = next_run - time.monotonic()
            if delay > 0 and self._stop_event.wait(delay):
                break
            if not self._running:
                break

            self.tick()

            next_run += self.period
            now = time.monotonic()
            missed = int((now - next_run) // self.period) if next_run < now else 0
            if missed:
                logger.warning(
                    f"Health check cycle overran its period, skipping {missed} tick(s)"
                )
                next_run += missed * self.period

        self._running = False
        logger.info("Health check daemon stopped")

    def start_background(self) -> threading.Thread:
        """Run the daemon loop on a background thread."""
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="apphealth-daemon",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        """Stop the daemon; a running cycle completes first."""
        self._running = False
        self._stop_event.set()

    def close(self, timeout: Optional[float] = 30.0) -> None:
        """
        Stop the daemon and release the publisher.

        Waits up to timeout seconds for a background loop to finish its
        current cycle before the publisher is closed.
        """
        self.stop()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"Health check cycle still running after {timeout}s")
        if self.publisher is not None:
            try:
                self.publisher.close()
            except Exception as e:
                logger.error(f"Error closing publisher: {e}")

    @property
    def is_running(self) -> bool:
        """Check if daemon is running."""
        return self._running


def create_daemon(
    config: Config,
    provider: ProbeProvider,
    catalog: Optional[ApplicationCatalog] = None,
    surface: Optional[HealthCheckSurface] = None,
) -> HealthCheckDaemon:
    """
    Build a daemon wired from configuration and initialize it.

    Args:
        config: Service configuration
        provider: Builds probes per application type
        catalog: Application catalog (default: applications from config)
        surface: Health-check surface (default: a new one)

    Returns:
        Initialized HealthCheckDaemon
    """
    daemon = HealthCheckDaemon(
        config=config,
        catalog=catalog if catalog is not None else StaticApplicationCatalog.from_config(config),
        provider=provider,
    )
    daemon.init(surface if surface is not None else HealthCheckSurface())
    return daemon


def format_outcome_table(outcome: CycleOutcome, show_details: bool = False) -> str:
    """
    Format a cycle outcome as a table.

    Args:
        outcome: Cycle outcome to render
        show_details: Whether to show error details

    Returns:
        Formatted table string
    """
    if not outcome.results:
        return "No applications to report."

    lines = []
    header = f"{'APPLICATION':<24} {'HEALTH':<8} {'MESSAGE':<40}"
    lines.append(header)
    lines.append("-" * len(header))

    for app_id, result in sorted(outcome.results.items()):
        message = result.message or "-"
        lines.append(f"{app_id:<24} {result.status_char:<8} {message:<40}")
        if show_details and result.error is not None:
            lines.append(f"  Error: {result.error.__class__.__name__}: {result.error}")

    return "\n".join(lines)
