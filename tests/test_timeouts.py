import math

import pytest

from query_registry.core.timeouts import (
    EXPIRED_MS,
    OperationBudget,
    UNBOUNDED,
    max_execution_time_ms,
    seconds_to_ms,
)


@pytest.mark.parametrize("timeout_ms", [1, 2, 3, 5, 7, 10, 99, 100, 333, 1000, 1234, 30000, 86_400_000])
def test_max_execution_time_is_ceil_of_eighty_percent(timeout_ms):
    assert max_execution_time_ms(timeout_ms) == math.ceil(timeout_ms * 4 / 5)


def test_zero_timeout_stays_unbounded():
    assert max_execution_time_ms(0) == UNBOUNDED == 0


def test_small_timeouts_round_up():
    assert max_execution_time_ms(1) == 1
    assert max_execution_time_ms(2) == 2
    assert max_execution_time_ms(6) == 5


def test_max_execution_time_is_monotonic():
    previous = max_execution_time_ms(0)
    for timeout_ms in range(1, 5000):
        current = max_execution_time_ms(timeout_ms)
        assert current >= previous
        previous = current


def test_negative_timeout_rejected():
    with pytest.raises(ValueError):
        max_execution_time_ms(-1)


def test_seconds_to_ms():
    assert seconds_to_ms(None) == 0
    assert seconds_to_ms(0) == 0
    assert seconds_to_ms(-3) == EXPIRED_MS
    assert seconds_to_ms(1.5) == 1500
    assert seconds_to_ms(0.0001) == 1


def test_budget_uses_configured_timeout_without_caller_deadline():
    budget = OperationBudget.derive(1000)
    assert budget == OperationBudget(client_timeout_ms=1000, server_timeout_ms=800)
    assert budget.is_bounded
    assert budget.client_timeout_seconds == 1.0


def test_budget_tighter_bound_governs():
    assert OperationBudget.derive(1000, 0.5).client_timeout_ms == 500
    assert OperationBudget.derive(1000, 0.5).server_timeout_ms == 400
    assert OperationBudget.derive(200, 5).client_timeout_ms == 200


def test_budget_caller_deadline_without_configured_timeout():
    budget = OperationBudget.derive(0, 2)
    assert budget == OperationBudget(client_timeout_ms=2000, server_timeout_ms=1600)


def test_budget_unbounded():
    budget = OperationBudget.derive(0, None)
    assert budget == OperationBudget(client_timeout_ms=0, server_timeout_ms=0)
    assert not budget.is_bounded
    assert budget.client_timeout_seconds is None


@pytest.mark.parametrize("configured_ms", [0, 1000])
@pytest.mark.parametrize("caller_timeout", [-0.5, -0.001, -30])
def test_expired_caller_deadline_stays_bounded(configured_ms, caller_timeout):
    budget = OperationBudget.derive(configured_ms, caller_timeout)

    assert budget.is_bounded
    assert budget == OperationBudget(client_timeout_ms=EXPIRED_MS, server_timeout_ms=1)
