"""Shared fixtures: Terraform project trees and a fake clock for the waiter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import structlog

from tfstate_lease.models.lease import BackendDescriptor


def make_state(**backend_config: Any) -> dict[str, Any]:
    config = {
        "storage_account_name": "acct",
        "container_name": "c",
        "key": "k.tfstate",
        "resource_group_name": "rg",
    }
    config.update(backend_config)
    return {
        "version": 3,
        "terraform_version": "1.9.5",
        "backend": {"type": "azurerm", "config": config, "hash": 1234},
    }


class FakeClock:
    """Monotonic clock that only moves when the waiter sleeps."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TerraformProject:
    """A project directory holding .terraform/terraform.tfstate."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.dot_terraform = root / ".terraform"

    @property
    def state_file(self) -> Path:
        return self.dot_terraform / "terraform.tfstate"

    def write(self, name: str, content: str | bytes) -> Path:
        path = self.dot_terraform / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
        return path


@pytest.fixture
def state_factory():
    return make_state


@pytest.fixture
def state_doc() -> dict[str, Any]:
    return make_state()


@pytest.fixture
def descriptor() -> BackendDescriptor:
    return BackendDescriptor(
        version=3,
        terraform_version="1.9.5",
        backend_type="azurerm",
        storage_account_name="acct",
        container_name="c",
        key="k.tfstate",
        resource_group_name="rg",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def terraform_project(tmp_path, state_doc) -> TerraformProject:
    project = TerraformProject(tmp_path)
    project.dot_terraform.mkdir()
    project.write("terraform.tfstate", json.dumps(state_doc))
    return project


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
