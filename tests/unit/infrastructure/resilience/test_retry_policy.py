import random

import pytest

from pdcli.domain.models.outcome import Classification
from pdcli.infrastructure.resilience.retry_policy import RetryPolicy

RETRYABLE = [Classification.RATE_LIMITED, Classification.SERVER_ERROR, Classification.NETWORK_ERROR]


@pytest.fixture
def policy():
    return RetryPolicy(max_attempts=4, base_delay=1.0, backoff_factor=2.0, max_delay=5.0, jitter=0.5, rng=random.Random(7))


def test_client_errors_are_never_retried(policy):
    decision = policy.decide(Classification.CLIENT_ERROR, 1)
    assert not decision.retry


def test_success_is_terminal(policy):
    with pytest.raises(ValueError):
        policy.decide(Classification.SUCCESS, 1)


@pytest.mark.parametrize("classification", RETRYABLE)
def test_transient_errors_retry_until_max_attempts(policy, classification):
    assert all(policy.decide(classification, attempt).retry for attempt in (1, 2, 3))
    assert not policy.decide(classification, 4).retry
    assert not policy.decide(classification, 9).retry


def test_backoff_grows_exponentially_with_bounded_jitter(policy):
    for attempt, base in [(1, 1.0), (2, 2.0), (3, 4.0), (4, 5.0), (8, 5.0)]:
        for _ in range(20):
            delay = policy.backoff(attempt)
            assert base <= delay <= base * 1.5


def test_jitter_spreads_delays():
    policy = RetryPolicy(base_delay=1.0, jitter=1.0, rng=random.Random(1))
    delays = {round(policy.backoff(1), 6) for _ in range(10)}
    assert len(delays) > 1


def test_zero_jitter_is_deterministic():
    policy = RetryPolicy(base_delay=0.5, jitter=0.0)
    assert policy.decide(Classification.SERVER_ERROR, 2).delay_seconds == pytest.approx(1.0)


def test_rate_limit_hint_is_a_lower_bound(policy):
    decision = policy.decide(Classification.RATE_LIMITED, 1, retry_after=30.0)
    assert decision.retry
    assert decision.delay_seconds >= 30.0


def test_small_hint_keeps_backoff(policy):
    decision = policy.decide(Classification.RATE_LIMITED, 3, retry_after=0.1)
    assert decision.delay_seconds >= 4.0


def test_hint_ignored_for_server_errors():
    policy = RetryPolicy(base_delay=0.1, jitter=0.0)
    decision = policy.decide(Classification.SERVER_ERROR, 1, retry_after=30.0)
    assert decision.delay_seconds == pytest.approx(0.1)


@pytest.mark.parametrize("kwargs", [
    {"max_attempts": 0},
    {"base_delay": -1},
    {"jitter": -0.1},
    {"backoff_factor": 0.5},
    {"max_retry_after": -1},
])
def test_invalid_configuration(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_long_hint_is_capped():
    policy = RetryPolicy(base_delay=0.1, jitter=0.0, max_retry_after=60.0)
    decision = policy.decide(Classification.RATE_LIMITED, 1, retry_after=86400.0)
    assert decision.delay_seconds == pytest.approx(60.0)


@pytest.mark.parametrize("hint", [float("inf"), float("nan")])
def test_non_finite_hint_falls_back_to_backoff(hint):
    policy = RetryPolicy(base_delay=0.1, jitter=0.0)
    decision = policy.decide(Classification.RATE_LIMITED, 1, retry_after=hint)
    assert decision.delay_seconds == pytest.approx(0.1)


def test_bound_hint():
    policy = RetryPolicy(max_retry_after=5.0)
    assert policy.bound_hint(None) is None
    assert policy.bound_hint(float("inf")) is None
    assert policy.bound_hint(3.0) == 3.0
    assert policy.bound_hint(9.0) == 5.0
