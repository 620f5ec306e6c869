import pytest
from loguru import logger


class FakeClock:
    """Monotonic tick source that only moves when advanced."""

    def __init__(self) -> None:
        self.now = 0

    def __call__(self) -> int:
        return self.now

    def advance(self, ticks: int) -> None:
        self.now += ticks


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def log_messages():
    """Capture loguru output at INFO and above."""
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="INFO", format="{level}|{message}")
    yield messages
    logger.remove(handler_id)
