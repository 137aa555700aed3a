"""
Tests for the delivery retry policy.
"""

# 3rd party imports
#
import pytest

# Project imports
#
from ..backoff import Backoff


####################################################################
#
def test_default_backoff():
    backoff = Backoff()
    assert backoff.max_attempts == 5
    assert [backoff.delay(x) for x in range(5)] == [2.0] * 5


####################################################################
#
def test_exponential_backoff():
    backoff = Backoff(initial_delay=0.5, multiplier=2.0, max_delay=3.0)
    assert [backoff.delay(x) for x in range(5)] == [0.5, 1.0, 2.0, 3.0, 3.0]


####################################################################
#
def test_backoff_many_attempts():
    """
    Far in to a long retry run the delay stays at the cap instead of
    overflowing.
    """
    backoff = Backoff(
        max_attempts=10000, initial_delay=1.0, multiplier=10.0, max_delay=30.0
    )
    assert backoff.delay(5000) == 30.0
    assert backoff.delay(9999) == 30.0
    assert Backoff(initial_delay=0, multiplier=2.0).delay(5000) == 0


####################################################################
#
@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"initial_delay": -1},
        {"max_delay": -1},
        {"multiplier": 0.5},
    ],
)
def test_backoff_invalid(kwargs):
    with pytest.raises(ValueError):
        Backoff(**kwargs)


####################################################################
#
def test_backoff_from_env(monkeypatch):
    monkeypatch.setenv("ASMAILDIR_MAX_DELAY", "10")
    config = {
        "ASMAILDIR_MAX_ATTEMPTS": "7",
        "ASMAILDIR_RETRY_DELAY": "0.25",
        "ASMAILDIR_RETRY_MULTIPLIER": None,
    }
    backoff = Backoff.from_env(config)
    assert backoff == Backoff(
        max_attempts=7, initial_delay=0.25, multiplier=1.0, max_delay=10.0
    )


####################################################################
#
def test_backoff_from_env_defaults(monkeypatch):
    for var in (
        "ASMAILDIR_MAX_ATTEMPTS",
        "ASMAILDIR_RETRY_DELAY",
        "ASMAILDIR_RETRY_MULTIPLIER",
        "ASMAILDIR_MAX_DELAY",
    ):
        monkeypatch.delenv(var, raising=False)
    assert Backoff.from_env() == Backoff()
    assert Backoff.from_env({}) == Backoff()
