"""Shared fixtures for hcaptcha-verify tests."""

import pytest

VERIFY_URL = "https://hcaptcha.com/siteverify"
SECRET = "0x0000000000000000000000000000000000000000"
SITEKEY = "10000000-ffff-ffff-ffff-000000000001"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
