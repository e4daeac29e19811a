"""Run the Terraform state lease checker as a pipeline step.

Usage:
    tfstate-lease-wait                      # inputs from INPUT_* variables
    tfstate-lease-wait --project-path ./infra --max-wait-time-seconds 600
"""

from __future__ import annotations

import argparse
import signal

import structlog

from tfstate_lease.core.config import AppSettings
from tfstate_lease.core.log import configure_logging
from tfstate_lease.host.files import LocalFileReader
from tfstate_lease.host.pipelines import AzurePipelinesHost
from tfstate_lease.orchestrator.task_runner import (
    INPUT_MAX_WAIT_TIME_SECONDS,
    INPUT_POLL_INTERVAL_SECONDS,
    INPUT_PROJECT_PATH,
    INPUT_SERVICE_CONNECTION,
    LeaseCheckTask,
)

logger = structlog.get_logger()

MSG_CANCELLED = "Cancelled while waiting for Terraform state lease"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tfstate-lease-wait",
        description="Wait until a Terraform azurerm remote state blob has no active lease",
    )
    parser.add_argument("--project-path", default=None, help="Terraform project directory (terraformProjectPath)")
    parser.add_argument("--service-connection", default=None, help="Service connection name (azureServiceConnection)")
    parser.add_argument("--max-wait-time-seconds", default=None, help="Wait budget, 60-7200 (maxWaitTimeSeconds)")
    parser.add_argument("--poll-interval-seconds", default=None, help="Poll cadence, 10-300 (pollIntervalSeconds)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = AppSettings()
    configure_logging(settings.logging)

    host = AzurePipelinesHost(overrides={
        INPUT_PROJECT_PATH: args.project_path,
        INPUT_SERVICE_CONNECTION: args.service_connection,
        INPUT_MAX_WAIT_TIME_SECONDS: args.max_wait_time_seconds,
        INPUT_POLL_INTERVAL_SECONDS: args.poll_interval_seconds,
    })
    task = LeaseCheckTask(
        host=host,
        credentials=host,
        sink=host,
        reader=LocalFileReader(),
        settings=settings,
    )

    # Pipeline cancellation sends SIGTERM; surface it the same way as Ctrl-C.
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    try:
        return task.run()
    except KeyboardInterrupt:
        logger.warning("task_cancelled")
        host.report_failure(MSG_CANCELLED)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
