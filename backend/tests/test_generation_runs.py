import asyncio

import pytest

from studyguide.services.session.generation_runs import GenerationInProgressError, GenerationRunRegistry
from studyguide.utils.cancellation import CancellationToken


def test_one_run_per_document():
    async def run():
        registry = GenerationRunRegistry()
        token = registry.start("doc")
        with pytest.raises(GenerationInProgressError):
            registry.start("doc")
        other = registry.start("other-doc")

        assert registry.stop("doc") is True
        assert token.cancelled
        assert not other.cancelled

        registry.finish("doc", token)
        assert not registry.is_active("doc")
        assert registry.stop("doc") is False
        return registry.start("doc") is not token

    assert asyncio.run(run())


def test_finish_ignores_stale_token():
    async def run():
        registry = GenerationRunRegistry()
        stale = registry.start("doc")
        registry.finish("doc", stale)
        current = registry.start("doc")
        registry.finish("doc", stale)
        still_active = registry.is_active("doc")
        registry.stop("doc")
        return still_active and current.cancelled and not stale.cancelled

    assert asyncio.run(run())


def test_token_run_returns_result_or_none():
    async def run():
        token = CancellationToken()
        done = await token.run(asyncio.sleep(0, result="value"))

        token.cancel()
        skipped = await token.run(asyncio.sleep(10, result="late"))
        return done, skipped

    assert asyncio.run(run()) == ("value", None)


def test_token_run_propagates_errors():
    async def failing():
        raise KeyError("boom")

    async def run():
        return await CancellationToken().run(failing())

    with pytest.raises(KeyError):
        asyncio.run(run())
