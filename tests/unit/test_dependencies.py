"""Unit tests for the service container."""

from types import SimpleNamespace

import pytest

from cart_recovery.dependencies import ServiceContainer


class Closable:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    async def dispose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_aclose_releases_all_clients() -> None:
    openai_client, cache, engine = Closable(), Closable(), Closable()
    container = ServiceContainer(
        settings=None,
        engine=engine,
        cache=cache,
        repository=None,
        composer=SimpleNamespace(client=openai_client),
        sms_sender=None,
        view_recorder=None,
        dispatcher=None,
        scanner=None,
    )

    await container.aclose()

    assert openai_client.closed is True
    assert cache.closed is True
    assert engine.closed is True
