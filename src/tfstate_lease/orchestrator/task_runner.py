"""LeaseCheckTask: wires inputs, state parsing, probing and result reporting."""

from __future__ import annotations

import os
import time
from typing import Callable

import structlog

from tfstate_lease.core.config import AppSettings, WaitConfig
from tfstate_lease.core.exceptions import (
    ConfigError,
    LeaseCheckerError,
    StateParseError,
    StateValidationError,
)
from tfstate_lease.core.protocols import (
    ICredentialProvider,
    IFileReader,
    IHostConfig,
    ILockStatusProbe,
    ITaskResultSink,
)
from tfstate_lease.core.types import Clock, Sleeper
from tfstate_lease.models.lease import BackendDescriptor, LockStatus, ServicePrincipal, WaitOutcome
from tfstate_lease.orchestrator.lease_waiter import LeaseWaiter
from tfstate_lease.storage import create_lock_probe
from tfstate_lease.terraform.state_parser import parse_state_descriptor
from tfstate_lease.terraform.workspace import effective_object_key, read_workspace

logger = structlog.get_logger()

INPUT_SERVICE_CONNECTION = "azureServiceConnection"
INPUT_PROJECT_PATH = "terraformProjectPath"
INPUT_MAX_WAIT_TIME_SECONDS = "maxWaitTimeSeconds"
INPUT_POLL_INTERVAL_SECONDS = "pollIntervalSeconds"

TERRAFORM_DIR = ".terraform"
STATE_FILE = "terraform.tfstate"

MSG_AVAILABLE = "Terraform state file is available (no lease)"
MSG_NOT_FOUND = "Terraform state file does not exist yet (no lease)"

ProbeFactory = Callable[[AppSettings, ServicePrincipal], ILockStatusProbe]


def failure_message(exc: LeaseCheckerError) -> str:
    """User-visible failure text for a terminal error."""
    if isinstance(exc, StateParseError):
        return f"Failed to parse Terraform state file as JSON: {exc}"
    if isinstance(exc, StateValidationError):
        return f"Failed to validate Terraform state file: {exc}"
    return str(exc)


class LeaseCheckTask:
    """One run of the lease checker task.

    Collaborators are injected at construction time; ``run()`` reports
    exactly one result to the sink and returns the process exit code.
    """

    def __init__(
        self,
        *,
        host: IHostConfig,
        credentials: ICredentialProvider,
        sink: ITaskResultSink,
        reader: IFileReader,
        settings: AppSettings | None = None,
        probe_factory: ProbeFactory = create_lock_probe,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._host = host
        self._credentials = credentials
        self._sink = sink
        self._reader = reader
        self._settings = settings or AppSettings()
        self._probe_factory = probe_factory
        self._clock = clock
        self._sleep = sleep

    def run(self) -> int:
        logger.info("task_started", task="terraform-state-lease-checker")
        try:
            outcome = self._execute()
        except LeaseCheckerError as exc:
            message = failure_message(exc)
            logger.error("task_failed", error_type=type(exc).__name__, error=message)
            self._sink.report_failure(message)
            return 1
        except Exception as exc:
            logger.exception("task_crashed")
            self._sink.report_failure(f"Unexpected error: {exc}")
            return 1

        message = MSG_NOT_FOUND if outcome.status is LockStatus.NOT_FOUND else MSG_AVAILABLE
        logger.info("task_succeeded", probes=outcome.probes, elapsed_seconds=outcome.elapsed_seconds)
        self._sink.report_success(message)
        return 0

    def _execute(self) -> WaitOutcome:
        connection_name = self._host.get_required_input(INPUT_SERVICE_CONNECTION)
        principal = self._credentials.get_service_principal(connection_name)
        logger.info("service_connection_resolved", connection=connection_name, principal_id=principal.principal_id)

        state_path = self._locate_state_file()
        wait_config = WaitConfig.from_inputs(
            self._host.get_optional_input(INPUT_MAX_WAIT_TIME_SECONDS),
            self._host.get_optional_input(INPUT_POLL_INTERVAL_SECONDS),
        )
        logger.info(
            "wait_config",
            max_wait_time_seconds=wait_config.max_wait_time_seconds,
            poll_interval_seconds=wait_config.poll_interval_seconds,
        )

        descriptor = self._load_descriptor(state_path)
        workspace = read_workspace(os.path.dirname(state_path), self._reader)
        object_key = effective_object_key(descriptor, workspace)
        logger.info(
            "remote_state_resolved",
            storage_account=descriptor.storage_account_name,
            container=descriptor.container_name,
            resource_group=descriptor.resource_group_name,
            workspace=workspace or "default",
            blob=object_key,
        )

        probe = self._probe_factory(self._settings, principal)
        waiter = LeaseWaiter(probe, wait_config, clock=self._clock, sleep=self._sleep)
        return waiter.wait(descriptor, object_key)

    def _locate_state_file(self) -> str:
        project_path = self._host.get_required_input(INPUT_PROJECT_PATH)
        if not self._reader.exists(project_path):
            raise ConfigError(f"Terraform project not found at: {project_path}")

        terraform_dir = os.path.join(project_path, TERRAFORM_DIR)
        if not self._reader.exists(terraform_dir):
            raise ConfigError(f".terraform directory not found at: {terraform_dir}")

        state_path = os.path.join(terraform_dir, STATE_FILE)
        if not self._reader.exists(state_path):
            raise ConfigError(f"Terraform state file not found at: {state_path}")
        return state_path

    def _load_descriptor(self, state_path: str) -> BackendDescriptor:
        logger.info("reading_state_file", path=state_path)
        try:
            raw = self._reader.read_text_file(state_path)
        except OSError as exc:
            raise ConfigError(
                f"Unable to read Terraform state file at: {state_path} ({exc.strerror or exc})"
            ) from exc
        return parse_state_descriptor(raw)
