import pytest

from app.domain.exceptions import RateLimitedError
from app.domain.identity import policy
from app.infra.rate_limit import allow


@pytest.mark.asyncio
async def test_rate_limit_allows_within_budget():
    assert await allow("auth:login", "10.0.0.5", limit=2, window_seconds=60)
    assert await allow("auth:login", "10.0.0.5", limit=2, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_blocks_when_budget_exhausted():
    await allow("auth:register", "10.0.0.6", limit=1, window_seconds=60)
    assert not await allow("auth:register", "10.0.0.6", limit=1, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_windows_are_independent():
    await allow("auth:login", "10.0.0.7", limit=1, window_seconds=60, now=1_000.0)
    assert await allow("auth:login", "10.0.0.7", limit=1, window_seconds=60, now=1_061.0)


@pytest.mark.asyncio
async def test_login_rate_raises_after_budget():
    for _ in range(policy.LOGIN_PER_MINUTE):
        await policy.enforce_login_rate("10.0.0.8", now=5_000.0)
    with pytest.raises(RateLimitedError):
        await policy.enforce_login_rate("10.0.0.8", now=5_000.0)
