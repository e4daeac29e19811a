"""Azure credential construction from a resolved service principal."""

from __future__ import annotations

from typing import Any

import structlog
from azure.identity import ClientSecretCredential, DefaultAzureCredential

from tfstate_lease.models.lease import ServicePrincipal

logger = structlog.get_logger()


def build_azure_credential(principal: ServicePrincipal | None) -> Any:
    """ClientSecretCredential for a complete service principal, else DefaultAzureCredential."""
    if principal is not None and principal.is_complete:
        logger.info("credential_selected", kind="service_principal", principal_id=principal.principal_id)
        return ClientSecretCredential(
            tenant_id=principal.tenant_id,
            client_id=principal.principal_id,
            client_secret=principal.principal_secret.get_secret_value(),
        )
    logger.info("credential_selected", kind="default_azure_credential")
    return DefaultAzureCredential()
