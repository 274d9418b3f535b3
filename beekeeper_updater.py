#!/usr/bin/env python3
"""
Beekeeper Updater (Docker Swarm)
Keeps swarm services labeled `octoblu.beekeeper.update=true` on the latest image
the beekeeper service has approved for their repository.
"""

import signal
import sys
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from docker.errors import DockerException
from requests import RequestException

from beekeeper_core import config_utils as cu
from beekeeper_core.config_utils import __version__
from beekeeper_core import metrics_utils as mu
from beekeeper_core import notify_utils as nu
from beekeeper_core.decision_utils import check_eligibility, decide_update
from beekeeper_core.logging_utils import setup_logging
from beekeeper_core.models import (
    OracleError,
    PassReport,
    ServiceRecord,
    ServiceResult,
    UnparseableImageError,
    OUTCOME_FAILED,
    OUTCOME_SKIPPED,
    OUTCOME_UNCHANGED,
    OUTCOME_UPDATED,
    UPDATE_LABEL,
)
from beekeeper_core.oracle_utils import BeekeeperClient
from beekeeper_core.spec_utils import build_update_patch
from beekeeper_core.swarm_utils import SwarmClient


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SwarmUpdater:
    """Runs reconciliation passes over the opted-in swarm services."""

    def __init__(self, settings: cu.Settings, swarm: Optional[SwarmClient] = None,
                 oracle: Optional[BeekeeperClient] = None, clock: Callable[[], datetime] = utc_now,
                 logger=None):
        self.settings = settings
        self.check_interval = settings.check_interval
        self.logger = logger or setup_logging()
        self.clock = clock
        self.shutdown_requested = False
        self.swarm = swarm or SwarmClient.from_uri(
            settings.docker_uri, api_version=settings.docker_api_version, logger=self.logger
        )
        self.oracle = oracle or BeekeeperClient(
            settings.beekeeper_uri, tags=settings.tags, timeout=settings.request_timeout, logger=self.logger
        )
        self.init_metrics()

    def init_metrics(self):
        m = mu.init_metrics(self.logger)
        self.metrics_enabled = m['enabled']
        self.counter_updates = m['updates']
        self.counter_failures = m['failures']
        self.counter_passes = m['passes']
        self.counter_pass_errors = m['pass_errors']

    def _notify_event(self, event_type: str, payload):
        nu.notify_event(event_type, payload, self.logger)

    def _service_failed(self, record: ServiceRecord, error: str) -> ServiceResult:
        self.counter_failures.inc()
        self._notify_event('update_failed', {
            'service_id': record.id,
            'service': record.name,
            'image': record.image,
            'error': error,
        })
        return ServiceResult(record.id, record.name, OUTCOME_FAILED, error)

    def process_service(self, record: ServiceRecord) -> ServiceResult:
        """Bring one service up to date. Never raises for per-service problems."""
        eligible, reason = check_eligibility(record)
        if not eligible:
            self.logger.debug(f"Skipping service {record.name or record.id}: {reason}")
            return ServiceResult(record.id, record.name, OUTCOME_SKIPPED, reason)

        self.logger.debug(f"found service {record.name or record.id} running {record.image}")
        try:
            decision = decide_update(record, self.oracle)
            if not decision.should_update:
                self.logger.debug(f"No update for {record.name or record.id}: {decision.reason}")
                return ServiceResult(record.id, record.name, OUTCOME_UNCHANGED, decision.reason)

            patch = build_update_patch(record, decision.image, self.clock())
            self.swarm.update_service(record, patch)
        except (UnparseableImageError, OracleError, DockerException, RequestException) as e:
            self.logger.error(f"Error updating service {record.name or record.id}: {e}")
            return self._service_failed(record, str(e))
        except Exception as e:
            self.logger.exception(f"Unexpected error updating service {record.name or record.id}: {e}")
            return self._service_failed(record, f"{type(e).__name__}: {e}")

        self.logger.info(f"Updated service {record.name or record.id}: {decision.reason}")
        self.counter_updates.inc()
        self._notify_event('service_updated', {
            'service_id': record.id,
            'service': record.name,
            'old_image': record.image,
            'new_image': decision.image,
        })
        return ServiceResult(record.id, record.name, OUTCOME_UPDATED, decision.reason, image=decision.image)

    def run_pass(self) -> PassReport:
        """One reconciliation pass. Listing errors propagate; service errors are reported."""
        services = self.swarm.list_services(UPDATE_LABEL)
        report = PassReport()
        for record in services:
            report.add(self.process_service(record))
        self.counter_passes.inc()
        return report

    def request_shutdown(self, signum=None, frame=None):
        print("SIGTERM received, waiting to exit")
        self.shutdown_requested = True

    def run_once(self) -> Optional[PassReport]:
        try:
            report = self.run_pass()
        except (DockerException, RequestException) as e:
            self.logger.error(f"Could not list services: {e}")
            self.counter_pass_errors.inc()
            return None
        except Exception as e:
            self.logger.exception(f"Unexpected error during pass: {e}")
            self.counter_pass_errors.inc()
            return None
        self.logger.info(f"Pass complete: {report.summary()}")
        return report

    def _sleep(self):
        # sleep in short steps so SIGTERM is noticed between passes
        deadline = time.monotonic() + self.check_interval
        while not self.shutdown_requested and time.monotonic() < deadline:
            time.sleep(min(1.0, max(0.0, deadline - time.monotonic())))

    def run(self):
        """Main execution loop."""
        self.logger.info(f"Beekeeper updater {__version__} starting...")
        self.logger.debug(f"BEEKEEPER_URI: {self.settings.beekeeper_uri}")
        self.logger.debug(f"DOCKER_HOST: {self.settings.docker_uri}")
        self.logger.info(f"Check interval: {self.check_interval} seconds")
        signal.signal(signal.SIGTERM, self.request_shutdown)

        try:
            while not self.shutdown_requested:
                self.run_once()
                self._sleep()
        except KeyboardInterrupt:
            self.logger.info("Received interrupt signal. Shutting down...")
        print("I'll be back.")

    def check_connectivity(self) -> bool:
        ok = True
        try:
            self.swarm.ping()
            print('Docker connectivity: OK')
        except (DockerException, RequestException) as e:
            print(f'Docker connectivity: FAIL - {e}')
            ok = False
        if self.oracle.ping():
            print('Beekeeper connectivity: OK')
        else:
            print('Beekeeper connectivity: FAIL')
            ok = False
        return ok


def main(argv=None):
    """Main entry point."""
    settings, args = cu.parse_args(argv)
    try:
        updater = SwarmUpdater(settings)
    except DockerException as e:
        print(f"Failed to initialize Docker client: {e}", file=sys.stderr)
        sys.exit(1)

    if args.test:
        sys.exit(0 if updater.check_connectivity() else 1)

    if args.once:
        report = updater.run_once()
        sys.exit(0 if report is not None else 1)

    updater.run()
    sys.exit(0)


if __name__ == "__main__":
    main()
