import httpx
import pytest

from services.relay import RelayOutcome, StreamRelay


class Closer:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


async def chunks(*items, error=None):
    for item in items:
        yield item
    if error is not None:
        raise error


async def collect(relay):
    return [chunk async for chunk in relay]


@pytest.mark.asyncio
async def test_relay_completes_in_order():
    close = Closer()
    relay = StreamRelay(chunks(b"data: a\n\n", b"data: b\n\n"), close)

    assert await relay.prime() is True
    assert await collect(relay) == [b"data: a\n\n", b"data: b\n\n"]
    assert relay.outcome is RelayOutcome.COMPLETED
    assert relay.bytes_sent == 18
    assert close.calls == 1


@pytest.mark.asyncio
async def test_relay_empty_stream_completes():
    close = Closer()
    relay = StreamRelay(chunks(), close)

    assert await relay.prime() is True
    assert await collect(relay) == []
    assert relay.outcome is RelayOutcome.COMPLETED
    assert close.calls == 1


@pytest.mark.asyncio
async def test_relay_skips_empty_chunks():
    relay = StreamRelay(chunks(b"", b"a", b"", b"b"), Closer())

    await relay.prime()
    assert await collect(relay) == [b"a", b"b"]


@pytest.mark.asyncio
async def test_relay_failure_before_bytes():
    close = Closer()
    relay = StreamRelay(chunks(error=httpx.ReadError("reset by peer")), close)

    assert await relay.prime() is False
    assert relay.outcome is RelayOutcome.FAILED_BEFORE_BYTES
    assert isinstance(relay.error, httpx.ReadError)
    assert relay.closed
    assert close.calls == 1


@pytest.mark.asyncio
async def test_relay_failure_after_bytes_keeps_partial_output():
    close = Closer()
    relay = StreamRelay(chunks(b"data: a\n\n", error=httpx.ReadError("reset by peer")), close)

    assert await relay.prime() is True
    assert await collect(relay) == [b"data: a\n\n"]
    assert relay.outcome is RelayOutcome.FAILED_AFTER_BYTES
    assert str(relay.error) == "reset by peer"
    assert close.calls == 1


@pytest.mark.asyncio
async def test_relay_unprimed_failure_counts_as_before_bytes():
    relay = StreamRelay(chunks(error=httpx.RemoteProtocolError("bad chunk")), Closer())

    assert await collect(relay) == []
    assert relay.outcome is RelayOutcome.FAILED_BEFORE_BYTES


@pytest.mark.asyncio
async def test_relay_cancel_stops_stream_and_releases_upstream():
    close = Closer()
    relay = StreamRelay(chunks(b"a", b"b", b"c"), close)
    await relay.prime()

    received = []
    async for chunk in relay:
        received.append(chunk)
        await relay.cancel()

    assert received == [b"a"]
    assert relay.outcome is RelayOutcome.CANCELLED
    assert close.calls == 1


@pytest.mark.asyncio
async def test_relay_abandoned_by_consumer_is_closed():
    close = Closer()
    relay = StreamRelay(chunks(b"a", b"b"), close)
    await relay.prime()

    iterator = relay.__aiter__()
    assert await anext(iterator) == b"a"
    await iterator.aclose()

    assert relay.outcome is RelayOutcome.CANCELLED
    assert close.calls == 1


@pytest.mark.asyncio
async def test_relay_close_is_idempotent_and_runs_callbacks_once():
    close = Closer()
    done = []
    relay = StreamRelay(chunks(b"a"), close)
    relay.add_done_callback(done.append)

    await relay.aclose()
    await relay.aclose()

    assert close.calls == 1
    assert done == [relay]
