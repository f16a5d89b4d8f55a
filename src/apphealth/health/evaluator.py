"""
Probe evaluation for the health service.

Runs a registry snapshot and reduces it to the result set a cycle reports.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping

from apphealth.core.models import HEALTHY_MESSAGE, HealthResult
from apphealth.health.probes import HealthProbe

logger = logging.getLogger(__name__)


class Evaluator:
    """Executes probes and filters their results for reporting."""

    def __init__(self, max_workers: int = 1):
        """
        Initialize evaluator.

        Args:
            max_workers: Probes run concurrently when greater than 1
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers

    def run_probe(self, app_id: str, probe: HealthProbe) -> HealthResult:
        """
        Execute one probe, converting failures into an unhealthy result.

        Args:
            app_id: Application identifier, used for logging
            probe: Probe to execute

        Returns:
            The probe's result, or an unhealthy result carrying the error
        """
        try:
            result = probe.execute()
        except Exception as e:
            logger.warning(f"Health check for {app_id} raised: {e}", exc_info=True)
            return HealthResult.failed(error=e)

        if not isinstance(result, HealthResult):
            error = TypeError(
                f"Probe returned {type(result).__name__}, expected HealthResult"
            )
            logger.warning(f"Health check for {app_id} is invalid: {error}")
            return HealthResult.failed(error=error)

        return result

    def execute_all(self, snapshot: Mapping[str, HealthProbe]) -> dict[str, HealthResult]:
        """
        Execute every probe in a snapshot.

        Returns:
            Dictionary of application ids to raw results
        """
        if self.max_workers == 1 or len(snapshot) <= 1:
            return {app_id: self.run_probe(app_id, probe) for app_id, probe in snapshot.items()}

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="apphealth-probe"
        ) as executor:
            futures = {
                app_id: executor.submit(self.run_probe, app_id, probe)
                for app_id, probe in snapshot.items()
            }
            return {app_id: future.result() for app_id, future in futures.items()}

    def evaluate(
        self, snapshot: Mapping[str, HealthProbe], is_daily: bool
    ) -> dict[str, HealthResult]:
        """
        Run a snapshot and keep the results a cycle reports.

        Unhealthy results are always kept. Healthy results are kept only for
        daily cycles, with an empty message replaced by "OK".

        Args:
            snapshot: Application ids to probes
            is_daily: Whether this is the daily digest cycle

        Returns:
            Dictionary of application ids to reported results
        """
        results = {}
        for app_id, result in self.execute_all(snapshot).items():
            if result.healthy:
                logger.info(f"Application {app_id} is healthy")
                if is_daily:
                    if not result.message:
                        result = HealthResult.ok(HEALTHY_MESSAGE)
                    results[app_id] = result
            else:
                logger.warning(
                    f"Application {app_id} is not healthy: {result.describe()}"
                )
                results[app_id] = result
        return results
