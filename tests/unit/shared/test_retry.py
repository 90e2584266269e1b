import pytest

from src.shared.utils.retry import retry


@pytest.mark.anyio
async def test_retries_until_success():
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("transient")
        return "ok"

    assert await retry(flaky, attempts=3, base_ms=1, jitter_ms=0) == "ok"
    assert len(calls) == 3


@pytest.mark.anyio
async def test_unlisted_errors_propagate_immediately():
    calls = []

    async def broken():
        calls.append(1)
        raise KeyError("x")

    with pytest.raises(KeyError):
        await retry(broken, attempts=5, retry_on=(ConnectionError,))
    assert len(calls) == 1


@pytest.mark.anyio
async def test_attempts_must_be_positive():
    async def noop():
        return None

    with pytest.raises(ValueError):
        await retry(noop, attempts=0)
