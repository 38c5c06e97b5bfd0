import asyncio
import base64
import json

import httpx
import pytest
from conftest import FakeLogStream, event_bytes, program_data_line, sample_fields

from stablind.constants import SSS_TOKEN_PROGRAM_ID
from stablind.core.models import LogNotification
from stablind.core.use_cases.index_events import IndexEventsService
from stablind.decoding.registries import make_core_registry
from stablind.decoding.specs import find_spec_by_name
from stablind.indexing.listener import EventListener, ListenerState
from stablind.indexing.supervisor import supervise
from stablind.services.webhooks import WebhookDispatcher


def _minted(stablecoin: str, amount: int = 1_000) -> bytes:
    spec = find_spec_by_name(make_core_registry(), "TokensMinted")
    return event_bytes("TokensMinted", sample_fields(spec, stablecoin=stablecoin, amount=amount))


def _frozen(stablecoin: str) -> bytes:
    spec = find_spec_by_name(make_core_registry(), "AccountFrozen")
    return event_bytes("AccountFrozen", sample_fields(spec, stablecoin=stablecoin))


def _notification(signature: str, *payloads: bytes, slot: int = 250, err=None, extra: tuple[str, ...] = ()) -> LogNotification:
    logs = (
        f"Program {SSS_TOKEN_PROGRAM_ID} invoke [1]",
        "Program log: Instruction: MintTokens",
        *extra,
        *(program_data_line(p) for p in payloads),
        f"Program {SSS_TOKEN_PROGRAM_ID} success",
    )
    return LogNotification(signature=signature, logs=logs, slot=slot, err=err)


@pytest.fixture
def service(store, mock_dispatcher) -> IndexEventsService:
    return IndexEventsService(store, mock_dispatcher)


@pytest.fixture
def listener(log_stream: FakeLogStream, service: IndexEventsService) -> EventListener:
    return EventListener(log_stream, service, stats=service.stats, clock=lambda: 1_700_000_123)


async def _run_until_end(listener: EventListener, stream: FakeLogStream) -> None:
    stream.end()
    await listener.wait()
    await listener.stop()


# ---------- lifecycle ----------


@pytest.mark.asyncio
async def test_start_subscribes_with_program_filter(listener, log_stream) -> None:
    await listener.start()
    assert listener.state is ListenerState.SUBSCRIBED
    assert listener.subscription_id == 1
    assert log_stream.subscribed == [(SSS_TOKEN_PROGRAM_ID, "confirmed")]

    with pytest.raises(RuntimeError):
        await listener.start()

    await listener.stop()
    assert listener.state is ListenerState.STOPPED
    assert listener.subscription_id is None
    assert log_stream.unsubscribed == [1]


@pytest.mark.asyncio
async def test_stop_is_idempotent(listener, log_stream) -> None:
    await listener.stop()
    await listener.start()
    await listener.stop()
    await listener.stop()
    assert log_stream.unsubscribed == [1]
    assert log_stream.closed == 1


@pytest.mark.asyncio
async def test_nothing_is_processed_after_stop(listener, log_stream, store, stablecoin) -> None:
    await listener.start()
    await listener.stop()
    log_stream.push(_notification("late", _minted(stablecoin)))
    assert store.count_events() == 0
    assert listener.stats.notifications == 0


@pytest.mark.asyncio
async def test_transport_failure_ends_session_and_restart_works(listener, log_stream, store, stablecoin) -> None:
    await listener.start()
    log_stream.fail(ConnectionError("socket reset"))
    await listener.wait()
    assert isinstance(listener.last_error, ConnectionError)
    assert not listener.running

    await listener.stop()
    await listener.start()
    assert listener.last_error is None
    assert listener.subscription_id == 2
    log_stream.push(_notification("after-restart", _minted(stablecoin)))
    await _run_until_end(listener, log_stream)
    assert store.count_events() == 1


# ---------- processing ----------


@pytest.mark.asyncio
async def test_event_is_recorded_with_projection(listener, log_stream, store, mock_dispatcher, stablecoin) -> None:
    await listener.start()
    log_stream.push(_notification("sig-1", _minted(stablecoin, amount=777), slot=4242))
    await _run_until_end(listener, log_stream)

    (event,) = store.list_events()
    assert event.event_type == "TokensMinted"
    assert event.stablecoin == stablecoin
    assert event.signature == "sig-1"
    assert event.slot == 4242
    assert event.timestamp == 1_700_000_123
    assert event.data["amount"] == "777"

    (op,) = store.list_operations()
    assert (op.operation, op.mint, op.amount, op.target) == ("mint", stablecoin, "777", event.data["recipient"])

    mock_dispatcher.dispatch.assert_awaited_once()
    event_type, payload = mock_dispatcher.dispatch.await_args.args
    assert event_type == "TokensMinted"
    assert payload["signature"] == "sig-1"
    assert payload["data"]["amount"] == "777"


@pytest.mark.asyncio
async def test_failed_transactions_are_discarded(listener, log_stream, store, mock_dispatcher, stablecoin) -> None:
    await listener.start()
    log_stream.push(_notification("sig-err", _minted(stablecoin), err={"InstructionError": [0, {"Custom": 6001}]}))
    await _run_until_end(listener, log_stream)

    assert store.count_events() == 0
    assert store.count_operations() == 0
    assert listener.stats.failed_skipped == 1
    mock_dispatcher.dispatch.assert_not_awaited()


@pytest.mark.asyncio
async def test_bad_lines_are_skipped_individually(listener, log_stream, store, stablecoin) -> None:
    good = _minted(stablecoin)
    extra = (
        "Program data: !!!not-base64!!!",
        "Program data: " + base64.b64encode(b"\xff" * 8 + b"\x01\x02").decode(),
        "Program data: " + base64.b64encode(good[:20]).decode(),
        "Program data: " + base64.b64encode(b"\x01\x02\x03\x04").decode(),
        "Program log: not program data",
    )
    await listener.start()
    log_stream.push(_notification("sig-mixed", good, extra=extra))
    log_stream.push(_notification("sig-next", _frozen(stablecoin)))
    await _run_until_end(listener, log_stream)

    assert [e.signature for e in store.list_events()] == ["sig-next", "sig-mixed"]
    assert listener.stats.lines_malformed == 2
    assert listener.stats.lines_unrecognised == 2
    assert listener.stats.events_stored == 2


@pytest.mark.asyncio
async def test_redelivery_yields_one_row_and_one_dispatch(listener, log_stream, store, mock_dispatcher, stablecoin) -> None:
    notification = _notification("sig-dup", _minted(stablecoin))
    await listener.start()
    log_stream.push(notification)
    log_stream.push(notification)
    await _run_until_end(listener, log_stream)

    assert store.count_events() == 1
    assert store.count_operations() == 1
    assert listener.stats.duplicates == 1
    assert mock_dispatcher.dispatch.await_count == 1


@pytest.mark.asyncio
async def test_sink_errors_do_not_stop_the_stream(log_stream, store, stablecoin) -> None:
    class FlakySink:
        def __init__(self) -> None:
            self.calls = 0

        async def handle(self, event) -> bool:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("disk full")
            return True

        async def drain(self) -> None:
            return None

    sink = FlakySink()
    listener = EventListener(log_stream, sink)
    await listener.start()
    log_stream.push(_notification("a", _minted(stablecoin)))
    log_stream.push(_notification("b", _minted(stablecoin)))
    await _run_until_end(listener, log_stream)
    assert sink.calls == 2
    assert listener.last_error is None


# ---------- end to end ----------


@pytest.mark.asyncio
async def test_end_to_end_with_webhooks(log_stream, store, webhook_repo, stablecoin) -> None:
    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(200)

    webhook_repo.register("https://mints.example/hook", ["TokensMinted"])
    webhook_repo.register("https://all.example/hook", ["*"])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        service = IndexEventsService(store, WebhookDispatcher(webhook_repo, client=client))
        listener = EventListener(log_stream, service, stats=service.stats)
        await listener.start()
        log_stream.push(_notification("sig-mint", _minted(stablecoin)))
        log_stream.push(_notification("sig-mint", _minted(stablecoin)))
        log_stream.push(_notification("sig-freeze", _frozen(stablecoin)))
        await _run_until_end(listener, log_stream)

    hosts = sorted(r.url.host for r in received)
    assert hosts == ["all.example", "all.example", "mints.example"]
    assert service.pending == 0
    assert service.stats.dispatches == 2


@pytest.mark.asyncio
async def test_unreachable_webhooks_do_not_block_indexing(log_stream, store, webhook_repo, stablecoin) -> None:
    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        if request.url.host == "down.example":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.host == "broken.example":
            return httpx.Response(500, text="boom")
        return httpx.Response(200)

    webhook_repo.register("https://down.example/hook", ["*"])
    webhook_repo.register("https://broken.example/hook", ["TokensMinted"])
    webhook_repo.register("https://good.example/hook", ["*"])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        service = IndexEventsService(store, WebhookDispatcher(webhook_repo, client=client))
        listener = EventListener(log_stream, service, stats=service.stats)
        await listener.start()
        log_stream.push(_notification("sig-mint", _minted(stablecoin)))
        while service.stats.dispatches < 1:
            await asyncio.sleep(0)
        await service.drain()

        assert store.count_events() == store.count_operations() == 1
        assert sorted(r.url.host for r in received) == ["broken.example", "down.example", "good.example"]

        log_stream.push(_notification("sig-freeze", _frozen(stablecoin)))
        await _run_until_end(listener, log_stream)

    assert store.count_events() == store.count_operations() == 2
    good = [json.loads(r.content)["event"] for r in received if r.url.host == "good.example"]
    assert good == ["TokensMinted", "AccountFrozen"]
    assert listener.last_error is None


# ---------- supervisor ----------


@pytest.mark.asyncio
async def test_supervisor_restarts_after_subscribe_failure(listener, log_stream, store, stablecoin) -> None:
    subscribe = log_stream.subscribe
    attempts = 0

    async def flaky_subscribe(program_id: str, commitment: str) -> int:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("logsSubscribe got no response within 10.0s")
        return await subscribe(program_id, commitment)

    log_stream.subscribe = flaky_subscribe
    log_stream.push(_notification("sig-3", _minted(stablecoin)))
    log_stream.end()

    restarts = await supervise(listener, backoff_initial_s=0, backoff_max_s=0, max_restarts=1)

    assert restarts == 1
    assert attempts == 2
    assert store.count_events() == 1
    assert listener.state is ListenerState.STOPPED


@pytest.mark.asyncio
async def test_supervisor_restarts_after_failure(listener, log_stream, store, stablecoin) -> None:
    log_stream.fail(ConnectionError("dropped"))
    log_stream.push(_notification("sig-2", _minted(stablecoin)))
    log_stream.end()

    restarts = await supervise(listener, backoff_initial_s=0, backoff_max_s=0, max_restarts=1)

    assert restarts == 1
    assert len(log_stream.subscribed) == 2
    assert log_stream.unsubscribed == [1, 2]
    assert listener.state is ListenerState.STOPPED
    assert store.count_events() == 1


@pytest.mark.asyncio
async def test_supervisor_stops_on_event(listener, log_stream) -> None:
    stop = asyncio.Event()

    async def request_stop() -> None:
        while listener.state is not ListenerState.SUBSCRIBED:
            await asyncio.sleep(0)
        stop.set()

    stopper = asyncio.create_task(request_stop())
    restarts = await supervise(listener, stop_event=stop)
    await stopper

    assert restarts == 0
    assert listener.state is ListenerState.STOPPED
    assert log_stream.unsubscribed == [1]


def test_fake_stream_satisfies_protocol(log_stream) -> None:
    from stablind.core.interfaces import ILogStream

    assert isinstance(log_stream, ILogStream)
