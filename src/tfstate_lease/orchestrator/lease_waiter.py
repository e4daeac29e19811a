"""LeaseWaiter: bounded polling until the remote state lease is released."""

from __future__ import annotations

import time
from enum import StrEnum

import structlog

from tfstate_lease.core.config import WaitConfig
from tfstate_lease.core.exceptions import AuthResolutionError, LeaseTimeoutError, ProbeError
from tfstate_lease.core.protocols import ILockStatusProbe
from tfstate_lease.core.types import Clock, ObjectKey, Sleeper
from tfstate_lease.models.lease import BackendDescriptor, LockStatus, WaitOutcome

logger = structlog.get_logger()

MIN_PROBE_TIMEOUT_SECONDS = 1.0


class WaiterState(StrEnum):
    IDLE = "IDLE"
    PROBING = "PROBING"
    WAITING = "WAITING"
    DONE = "DONE"
    FAILED = "FAILED"


class LeaseWaiter:
    """Polls one blob's lock status until it is free, missing, or the budget runs out.

    Exactly one probe is in flight at a time. Elapsed time is measured from
    the first probe, so setup work done before ``wait()`` does not count
    against ``max_wait_time_seconds``. The timeout check always runs before
    sleeping, and the sleep is clipped to the remaining budget, so the last
    probe lands at the deadline instead of a full interval past it. Each probe
    is handed the remaining budget (at least MIN_PROBE_TIMEOUT_SECONDS) as
    its timeout.
    """

    def __init__(
        self,
        probe: ILockStatusProbe,
        config: WaitConfig,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._probe = probe
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self.state = WaiterState.IDLE

    def _transition(self, state: WaiterState, **context) -> None:
        self.state = state
        logger.debug("lease_wait_state", state=state, **context)

    def wait(self, descriptor: BackendDescriptor, object_key: ObjectKey) -> WaitOutcome:
        """Block until ``object_key`` has no active lease.

        Raises:
            LeaseTimeoutError: still locked once max_wait_time_seconds elapsed.
            ProbeError: the probe failed; not retried.
            AuthResolutionError: the credential could not obtain a token.
        """
        max_wait = self._config.max_wait_time_seconds
        interval = self._config.poll_interval_seconds
        start = self._clock()
        probes = 0

        logger.info(
            "lease_wait_started",
            storage_account=descriptor.storage_account_name,
            container=descriptor.container_name,
            blob=object_key,
            max_wait_time_seconds=max_wait,
            poll_interval_seconds=interval,
        )

        while True:
            budget = max(MIN_PROBE_TIMEOUT_SECONDS, max_wait - (self._clock() - start))
            self._transition(WaiterState.PROBING, probe=probes + 1, timeout_seconds=budget)
            try:
                status = self._probe.get_lock_status(
                    descriptor.storage_account_name,
                    descriptor.container_name,
                    object_key,
                    timeout=budget,
                )
            except (ProbeError, AuthResolutionError):
                self._transition(WaiterState.FAILED, reason="probe_error")
                raise
            probes += 1
            elapsed = max(0.0, self._clock() - start)

            if status.is_free:
                self._transition(WaiterState.DONE, status=status)
                logger.info("lease_wait_finished", status=status, probes=probes, elapsed_seconds=int(elapsed))
                return WaitOutcome(
                    status=status,
                    probes=probes,
                    elapsed_seconds=int(elapsed),
                    object_key=object_key,
                )

            if elapsed >= max_wait:
                self._transition(WaiterState.FAILED, reason="timeout")
                raise LeaseTimeoutError(max_wait, probes, int(elapsed))

            remaining = max_wait - elapsed
            delay = min(interval, remaining)
            self._transition(WaiterState.WAITING, delay_seconds=delay)
            logger.info(
                "lease_held",
                blob=object_key,
                status=LockStatus.LOCKED,
                remaining_seconds=round(remaining),
            )
            self._sleep(delay)
