"""Azure Pipelines host adapter: task inputs, service connections, result reporting.

The agent hands a task its inputs and service connection parameters through
environment variables and reads results back from ``##vso[...]`` logging
commands on stdout.
"""

from __future__ import annotations

import os
import sys
from typing import Mapping, TextIO

import structlog

from tfstate_lease.core.exceptions import AuthResolutionError, ConfigError
from tfstate_lease.models.lease import ServicePrincipal

logger = structlog.get_logger()

SUCCEEDED = "Succeeded"
FAILED = "Failed"


def input_env_name(name: str) -> str:
    return "INPUT_" + name.replace(" ", "_").replace(".", "_").upper()


def endpoint_auth_env_name(connection_name: str, key: str) -> str:
    return f"ENDPOINT_AUTH_PARAMETER_{connection_name}_{key.upper()}"


def escape_data(value: str) -> str:
    return value.replace("%", "%AZP25").replace("\r", "%0D").replace("\n", "%0A")


class AzurePipelinesHost:
    """IHostConfig, ICredentialProvider and ITaskResultSink for an Azure Pipelines agent.

    ``overrides`` take precedence over ``INPUT_*`` variables, so the task can
    also be driven from a local command line.
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, str | None] | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self._stream = stream
        self.result: str | None = None

    # ---- IHostConfig ----

    def get_optional_input(self, name: str) -> str | None:
        value = self._overrides.get(name)
        if value is None:
            value = self._environ.get(input_env_name(name))
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_required_input(self, name: str) -> str:
        value = self.get_optional_input(name)
        if value is None:
            raise ConfigError(f"Input required: {name}")
        return value

    # ---- ICredentialProvider ----

    def _endpoint_auth_parameter(self, connection_name: str, key: str) -> str | None:
        for candidate in (connection_name, connection_name.upper()):
            value = self._environ.get(endpoint_auth_env_name(candidate, key))
            if value:
                return value
        return None

    def get_service_principal(self, connection_name: str) -> ServicePrincipal:
        principal_id = self._endpoint_auth_parameter(connection_name, "serviceprincipalid")
        if not principal_id:
            raise AuthResolutionError(
                f"Endpoint auth data not present: serviceprincipalid for {connection_name!r}"
            )
        principal_key = self._endpoint_auth_parameter(connection_name, "serviceprincipalkey")
        if not principal_key:
            raise AuthResolutionError(
                f"Endpoint auth data not present: serviceprincipalkey for {connection_name!r}"
            )
        tenant_id = self._endpoint_auth_parameter(connection_name, "tenantid") or ""
        return ServicePrincipal(
            principal_id=principal_id,
            principal_secret=principal_key,
            tenant_id=tenant_id,
        )

    # ---- ITaskResultSink ----

    def _command(self, line: str) -> None:
        print(line, file=self._stream or sys.stdout, flush=True)

    def _complete(self, result: str, message: str) -> None:
        if self.result is not None:
            logger.warning("task_result_already_reported", result=self.result, ignored=result)
            return
        self.result = result
        self._command(f"##vso[task.complete result={result};]{escape_data(message)}")

    def report_success(self, message: str) -> None:
        self._complete(SUCCEEDED, message)

    def report_failure(self, message: str) -> None:
        if self.result is None:
            self._command(f"##vso[task.logissue type=error;]{escape_data(message)}")
        self._complete(FAILED, message)
