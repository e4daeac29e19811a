"""Type aliases used across the lease checker."""

from __future__ import annotations

from typing import Any, Callable

JsonDict = dict[str, Any]
ObjectKey = str
Workspace = str | None
Clock = Callable[[], float]
Sleeper = Callable[[float], None]
