"""Tests for the LeaseWaiter polling state machine."""

from __future__ import annotations

import pytest

from tfstate_lease.core.config import WaitConfig
from tfstate_lease.core.exceptions import (
    AccountUnreachableError,
    AuthResolutionError,
    ContainerMissingError,
    LeaseTimeoutError,
    ProbeError,
    TransientProbeError,
)
from tfstate_lease.models.lease import LockStatus
from tfstate_lease.orchestrator.lease_waiter import MIN_PROBE_TIMEOUT_SECONDS, LeaseWaiter, WaiterState
from tfstate_lease.storage.memory_probe import MemoryLockProbe

LOCKED = LockStatus.LOCKED
UNLOCKED = LockStatus.UNLOCKED
KEY = "k.tfstate"


def _waiter(script, clock, max_wait=60, poll=10):
    probe = MemoryLockProbe(script)
    config = WaitConfig(max_wait_time_seconds=max_wait, poll_interval_seconds=poll)
    return LeaseWaiter(probe, config, clock=clock, sleep=clock.sleep), probe


class TestSuccess:
    def test_unlocked_first_probe_never_sleeps(self, descriptor, clock):
        waiter, probe = _waiter([UNLOCKED], clock)
        outcome = waiter.wait(descriptor, KEY)
        assert outcome.status is UNLOCKED
        assert outcome.probes == 1
        assert clock.sleeps == []
        assert waiter.state is WaiterState.DONE

    def test_not_found_counts_as_unlocked(self, descriptor, clock):
        waiter, _ = _waiter([LockStatus.NOT_FOUND], clock)
        outcome = waiter.wait(descriptor, KEY)
        assert outcome.status is LockStatus.NOT_FOUND
        assert outcome.probes == 1

    @pytest.mark.parametrize("locked_count", [1, 2, 5])
    def test_n_locked_then_unlocked_takes_n_plus_one_probes(self, descriptor, clock, locked_count):
        waiter, probe = _waiter([LOCKED] * locked_count + [UNLOCKED], clock, max_wait=60, poll=10)
        outcome = waiter.wait(descriptor, KEY)
        assert outcome.probes == locked_count + 1
        assert len(probe.calls) == locked_count + 1
        assert clock.sleeps == [10] * locked_count

    def test_locked_locked_unlocked_scenario(self, descriptor, clock):
        waiter, _ = _waiter([LOCKED, LOCKED, UNLOCKED], clock, max_wait=1800, poll=10)
        outcome = waiter.wait(descriptor, KEY)
        assert outcome.probes == 3
        assert outcome.elapsed_seconds >= 20
        assert outcome.object_key == KEY

    def test_probes_same_key_every_time(self, descriptor, clock):
        waiter, probe = _waiter([LOCKED, LOCKED, UNLOCKED], clock)
        waiter.wait(descriptor, "k.tfstateenv:w1")
        assert set(probe.calls) == {("acct", "c", "k.tfstateenv:w1")}

    def test_elapsed_measured_from_loop_entry(self, descriptor, clock):
        clock.now = 1000.0
        waiter, _ = _waiter([LOCKED, LOCKED, UNLOCKED], clock)
        outcome = waiter.wait(descriptor, KEY)
        assert outcome.elapsed_seconds == 20


class TestTimeout:
    def test_always_locked_times_out_at_deadline(self, descriptor, clock):
        waiter, probe = _waiter([LOCKED], clock, max_wait=60, poll=10)
        with pytest.raises(LeaseTimeoutError) as exc_info:
            waiter.wait(descriptor, KEY)
        assert len(probe.calls) == 7
        assert clock.now == 60
        assert exc_info.value.max_wait_time_seconds == 60
        assert exc_info.value.probes == 7
        assert waiter.state is WaiterState.FAILED

    def test_message_quotes_configured_budget(self, descriptor, clock):
        waiter, _ = _waiter([LOCKED], clock, max_wait=120, poll=30)
        with pytest.raises(LeaseTimeoutError, match="after 120 seconds \\(2 minutes\\)"):
            waiter.wait(descriptor, KEY)

    def test_is_builtin_timeout_error(self, descriptor, clock):
        waiter, _ = _waiter([LOCKED], clock)
        with pytest.raises(TimeoutError):
            waiter.wait(descriptor, KEY)

    def test_last_sleep_clipped_to_remaining_budget(self, descriptor, clock):
        waiter, probe = _waiter([LOCKED], clock, max_wait=65, poll=30)
        with pytest.raises(LeaseTimeoutError):
            waiter.wait(descriptor, KEY)
        assert clock.sleeps == [30, 30, 5]
        assert len(probe.calls) == 4
        assert clock.now == 65

    def test_each_probe_gets_remaining_budget(self, descriptor, clock):
        waiter, probe = _waiter([LOCKED] * 3 + [UNLOCKED], clock, max_wait=60, poll=25)
        waiter.wait(descriptor, KEY)
        assert probe.timeouts == [60, 35, 10, MIN_PROBE_TIMEOUT_SECONDS]

    def test_budget_counts_time_spent_inside_probe(self, descriptor, clock):
        class SlowProbe(MemoryLockProbe):
            def get_lock_status(self, *args, **kwargs):
                result = super().get_lock_status(*args, **kwargs)
                clock.now += 7
                return result

        probe = SlowProbe([LOCKED, UNLOCKED])
        config = WaitConfig(max_wait_time_seconds=60, poll_interval_seconds=10)
        LeaseWaiter(probe, config, clock=clock, sleep=clock.sleep).wait(descriptor, KEY)
        assert probe.timeouts == [60, 43]

    def test_unlock_on_final_probe_at_deadline_succeeds(self, descriptor, clock):
        waiter, _ = _waiter([LOCKED] * 6 + [UNLOCKED], clock, max_wait=60, poll=10)
        outcome = waiter.wait(descriptor, KEY)
        assert outcome.probes == 7
        assert outcome.elapsed_seconds == 60


class TestProbeErrors:
    @pytest.mark.parametrize(
        "error",
        [
            AccountUnreachableError("acct", "c", "unreachable"),
            ContainerMissingError("acct", "c", "no container"),
            TransientProbeError("acct", "c", "503"),
        ],
    )
    def test_probe_error_fails_without_retry(self, descriptor, clock, error):
        waiter, probe = _waiter([LOCKED, error], clock)
        with pytest.raises(type(error)):
            waiter.wait(descriptor, KEY)
        assert len(probe.calls) == 2
        assert clock.sleeps == [10]
        assert waiter.state is WaiterState.FAILED

    def test_first_probe_error_is_immediate(self, descriptor, clock):
        waiter, _ = _waiter([ContainerMissingError("acct", "c", "gone")], clock)
        with pytest.raises(ProbeError):
            waiter.wait(descriptor, KEY)
        assert clock.sleeps == []

    def test_token_failure_fails_without_retry(self, descriptor, clock):
        waiter, probe = _waiter([AuthResolutionError("token rejected")], clock)
        with pytest.raises(AuthResolutionError):
            waiter.wait(descriptor, KEY)
        assert len(probe.calls) == 1
        assert waiter.state is WaiterState.FAILED
