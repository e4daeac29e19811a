"""Workspace resolution and remote object key derivation."""

from __future__ import annotations

import os

from tfstate_lease.core.protocols import IFileReader
from tfstate_lease.core.types import ObjectKey, Workspace
from tfstate_lease.models.lease import DEFAULT_WORKSPACE, BackendDescriptor

ENVIRONMENT_FILE = "environment"
WORKSPACE_KEY_SEPARATOR = "env:"


def resolve_workspace(content: bytes | str | None) -> Workspace:
    """Blank or missing marker content means the default workspace (None)."""
    if content is None:
        return None
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return content.strip() or None


def effective_object_key(descriptor: BackendDescriptor, workspace: Workspace) -> ObjectKey:
    """Blob name holding the state for ``workspace``.

    The azurerm backend stores non-default workspaces next to the base key,
    suffixed with ``env:<workspace>``.
    """
    if workspace is None or workspace == DEFAULT_WORKSPACE:
        return descriptor.key
    return f"{descriptor.key}{WORKSPACE_KEY_SEPARATOR}{workspace}"


def read_workspace(terraform_dir: str, reader: IFileReader) -> Workspace:
    """Read ``<terraform_dir>/environment``; a missing file is the default workspace."""
    try:
        content = reader.read_text_file(os.path.join(terraform_dir, ENVIRONMENT_FILE))
    except FileNotFoundError:
        return None
    return resolve_workspace(content)
