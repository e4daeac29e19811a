"""Parse .terraform/terraform.tfstate into a BackendDescriptor.

The local state file written by ``terraform init`` carries the backend block
that points at the remote state object::

    {
      "version": 3,
      "terraform_version": "1.9.5",
      "backend": {
        "type": "azurerm",
        "config": {
          "storage_account_name": "...",
          "container_name": "...",
          "key": "...",
          "resource_group_name": "..."
        }
      }
    }

Validation is a plain structural walk in document order; the first violation
is raised. Unknown fields are ignored.
"""

from __future__ import annotations

import json
from typing import Any

from tfstate_lease.core.exceptions import StateParseError, StateValidationError
from tfstate_lease.core.types import JsonDict
from tfstate_lease.models.lease import AZURERM_BACKEND, BackendDescriptor

CONFIG_FIELDS = ("storage_account_name", "container_name", "key", "resource_group_name")


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _require(obj: JsonDict, name: str, path: str) -> Any:
    if name not in obj:
        raise StateValidationError(path, "required field is missing")
    return obj[name]


def _require_object(obj: JsonDict, name: str, path: str) -> JsonDict:
    value = _require(obj, name, path)
    if not isinstance(value, dict):
        raise StateValidationError(path, f"expected object, received {_type_name(value)}")
    return value


def _require_int(obj: JsonDict, name: str, path: str) -> int:
    value = _require(obj, name, path)
    if isinstance(value, bool) or not isinstance(value, int):
        raise StateValidationError(path, f"expected integer, received {_type_name(value)}")
    return value


def _require_str(obj: JsonDict, name: str, path: str, *, non_empty: bool = False) -> str:
    value = _require(obj, name, path)
    if not isinstance(value, str):
        raise StateValidationError(path, f"expected string, received {_type_name(value)}")
    if non_empty and not value.strip():
        raise StateValidationError(path, "must not be empty")
    return value


def _load_json(raw: bytes | str) -> Any:
    try:
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
    except UnicodeDecodeError as exc:
        raise StateParseError(f"state file is not valid UTF-8: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise StateParseError(str(exc)) from exc


def parse_state_descriptor(raw: bytes | str) -> BackendDescriptor:
    """Parse and strictly validate local Terraform state content.

    Raises:
        StateParseError: content is not JSON.
        StateValidationError: a required field is missing, mistyped or empty,
            or the backend type is not ``azurerm``.
    """
    doc = _load_json(raw)
    if not isinstance(doc, dict):
        raise StateValidationError("$", f"expected object, received {_type_name(doc)}")

    version = _require_int(doc, "version", "version")
    terraform_version = _require_str(doc, "terraform_version", "terraform_version")

    backend = _require_object(doc, "backend", "backend")
    backend_type = _require_str(backend, "type", "backend.type", non_empty=True)
    if backend_type != AZURERM_BACKEND:
        raise StateValidationError(
            "backend.type", f'expected "{AZURERM_BACKEND}", received "{backend_type}"'
        )

    config = _require_object(backend, "config", "backend.config")
    fields = {
        name: _require_str(config, name, f"backend.config.{name}", non_empty=True)
        for name in CONFIG_FIELDS
    }

    return BackendDescriptor(
        version=version,
        terraform_version=terraform_version,
        backend_type=backend_type,
        **fields,
    )
