"""Azure Blob Storage backend implementing ILockStatusProbe."""

from __future__ import annotations

from typing import Any

import structlog
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.identity import CredentialUnavailableError
from azure.storage.blob import BlobServiceClient, ExponentialRetry

from tfstate_lease.core.config import StorageConfig
from tfstate_lease.core.exceptions import (
    AccountUnreachableError,
    AuthResolutionError,
    ContainerMissingError,
    TransientProbeError,
)
from tfstate_lease.models.lease import LockStatus

logger = structlog.get_logger()

UNLOCKED_LEASE_STATES = frozenset({"available", "expired", "broken"})
TRANSIENT_STATUS_CODES = frozenset({408, 429})
RETRY_JITTER_SECONDS = 3


def lock_status_from_lease(lease_status: str | None, lease_state: str | None) -> LockStatus:
    """Map blob lease properties onto LockStatus."""
    if (lease_status or "").lower() == "unlocked":
        return LockStatus.UNLOCKED
    if (lease_state or "").lower() in UNLOCKED_LEASE_STATES:
        return LockStatus.UNLOCKED
    return LockStatus.LOCKED


def _error_code(exc: HttpResponseError) -> str | None:
    error_code = getattr(exc, "error_code", None)
    if error_code is None:
        return None
    return str(getattr(error_code, "value", error_code))


def _answered_by(exc: HttpResponseError, account_url: str) -> bool:
    # Token failures from azure-identity carry no response, or the identity endpoint's.
    response = getattr(exc, "response", None)
    request = getattr(response, "request", None)
    url = getattr(request, "url", None)
    return isinstance(url, str) and url.startswith(account_url)


class AzureBlobLockProbe:
    """Production ILockStatusProbe backed by Azure Blob Storage.

    Each call issues one Get Blob Properties request. Transient failures are
    retried inside the SDK's ExponentialRetry policy, bounded by
    ``StorageConfig.retry_total``; whatever survives those retries is mapped
    onto the probe error taxonomy. When the caller passes ``timeout``, the
    per-request timeouts and the retry count are cut down to fit it.
    """

    def __init__(self, credential: Any, config: StorageConfig | None = None) -> None:
        self._credential = credential
        self._config = config or StorageConfig()
        self._clients: dict[str, BlobServiceClient] = {}

    def _service_client(self, storage_account_name: str) -> BlobServiceClient:
        client = self._clients.get(storage_account_name)
        if client is None:
            client = BlobServiceClient(
                account_url=self._config.account_url(storage_account_name),
                credential=self._credential,
                retry_policy=ExponentialRetry(
                    initial_backoff=self._config.retry_initial_backoff,
                    increment_base=self._config.retry_increment_base,
                    retry_total=self._config.retry_total,
                    random_jitter_range=RETRY_JITTER_SECONDS,
                ),
                connection_timeout=self._config.connection_timeout,
                read_timeout=self._config.read_timeout,
            )
            self._clients[storage_account_name] = client
        return client

    def request_options(self, timeout: float | None) -> dict[str, Any]:
        """Per-call SDK keyword arguments that keep one probe within ``timeout`` seconds."""
        if timeout is None:
            return {}
        connection_timeout = min(self._config.connection_timeout, timeout)
        read_timeout = min(self._config.read_timeout, timeout)
        attempt = connection_timeout + read_timeout
        spent = attempt
        retries = 0
        for count in range(self._config.retry_total):
            backoff = self._config.retry_initial_backoff + (
                0 if count == 0 else self._config.retry_increment_base ** count
            )
            spent += backoff + RETRY_JITTER_SECONDS + attempt
            if spent > timeout:
                break
            retries += 1
        return {
            "retry_total": retries,
            "connection_timeout": connection_timeout,
            "read_timeout": read_timeout,
        }

    def get_lock_status(
        self,
        storage_account_name: str,
        container_name: str,
        object_key: str,
        timeout: float | None = None,
    ) -> LockStatus:
        account_url = self._config.account_url(storage_account_name)
        blob = self._service_client(storage_account_name).get_blob_client(
            container=container_name, blob=object_key,
        )
        try:
            props = blob.get_blob_properties(**self.request_options(timeout))
        except ResourceNotFoundError as exc:
            error_code = _error_code(exc)
            if error_code == "BlobNotFound":
                logger.info("lease_probe", blob=object_key, status=LockStatus.NOT_FOUND)
                return LockStatus.NOT_FOUND
            raise ContainerMissingError(
                storage_account_name, container_name,
                f"Container {container_name!r} not found in storage account "
                f"{storage_account_name!r} ({error_code or exc.status_code})",
            ) from exc
        except CredentialUnavailableError as exc:
            raise AuthResolutionError(f"No usable Azure credential for storage access: {exc.message}") from exc
        except ClientAuthenticationError as exc:
            if not _answered_by(exc, account_url):
                raise AuthResolutionError(
                    f"Service principal could not obtain a token for storage account "
                    f"{storage_account_name!r}: {exc.message}"
                ) from exc
            raise AccountUnreachableError(
                storage_account_name, container_name,
                f"Access denied to storage account {storage_account_name!r}: {exc.message}",
            ) from exc
        except ServiceRequestError as exc:
            raise AccountUnreachableError(
                storage_account_name, container_name,
                f"Storage account {storage_account_name!r} is unreachable: {exc.message}",
            ) from exc
        except ServiceResponseError as exc:
            raise TransientProbeError(
                storage_account_name, container_name,
                f"Storage account {storage_account_name!r} returned no usable response: {exc.message}",
            ) from exc
        except HttpResponseError as exc:
            code = exc.status_code or 0
            error_code = _error_code(exc)
            if code >= 500 or code in TRANSIENT_STATUS_CODES:
                raise TransientProbeError(
                    storage_account_name, container_name,
                    f"Storage service error {code} for blob {object_key!r}: {error_code}",
                ) from exc
            raise AccountUnreachableError(
                storage_account_name, container_name,
                f"Storage account {storage_account_name!r} rejected the request ({code} {error_code})",
            ) from exc

        status = lock_status_from_lease(props.lease.status, props.lease.state)
        logger.info(
            "lease_probe",
            blob=object_key,
            lease_status=props.lease.status,
            lease_state=props.lease.state,
            status=status,
        )
        return status
