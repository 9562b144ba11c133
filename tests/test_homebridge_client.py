from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from controllers.homebridge import HomebridgeClient, read_frame
from errors import ConnectivityFailure, ParseFailure, SubscriptionFailure, TransportFailure

from hap_fixtures import instance, lightbulb

PIN = "031-45-154"


def make_client(handler) -> HomebridgeClient:
    return HomebridgeClient(pin=PIN, transport=httpx.MockTransport(handler))


def call(handler, method: str, *args):
    async def scenario():
        client = make_client(handler)
        try:
            return await getattr(client, method)(*args)
        finally:
            await client.close()

    return asyncio.run(scenario())


class TestHttpCalls:
    def test_accessories_sends_pin_and_unwraps_list(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"accessories": [lightbulb(2)]})

        accessories = call(handler, "accessories", instance())
        assert accessories[0]["aid"] == 2
        assert str(seen[0].url) == "http://192.0.2.10:51826/accessories"
        assert seen[0].headers["Authorization"] == PIN
        assert seen[0].headers["Content-Type"] == "application/hap+json"

    def test_accessories_bad_body(self) -> None:
        with pytest.raises(ParseFailure):
            call(lambda request: httpx.Response(200, json={"nope": []}), "accessories", instance())

    def test_check_connection_probes_impossible_characteristic(self) -> None:
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(207, json={"characteristics": [{"aid": -1, "iid": -1, "status": -70409}]})

        call(handler, "check_connection", instance())
        assert bodies == [{"characteristics": [{"aid": -1, "iid": -1}]}]

    def test_check_connection_wrong_pin(self) -> None:
        with pytest.raises(ConnectivityFailure):
            call(lambda request: httpx.Response(470), "check_connection", instance())

    def test_check_connection_refused(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ConnectivityFailure):
            call(handler, "check_connection", instance())

    def test_control_accepts_no_content(self) -> None:
        payload = {"characteristics": [{"aid": 2, "iid": 12, "value": True}]}
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append((request.method, json.loads(request.content)))
            return httpx.Response(204)

        call(handler, "control", instance(), payload)
        assert sent == [("PUT", payload)]

    def test_control_multi_status_with_rejection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(207, json={"characteristics": [{"aid": 2, "iid": 12, "status": -70404}]})

        with pytest.raises(TransportFailure):
            call(handler, "control", instance(), {"characteristics": []})

    def test_control_multi_status_all_ok(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(207, json={"characteristics": [{"aid": 2, "iid": 12, "status": 0}]})

        call(handler, "control", instance(), {"characteristics": []})

    def test_status_queries_ids(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params["id"])
            return httpx.Response(200, json={"characteristics": [{"aid": 2, "iid": 12, "value": True}]})

        values = call(handler, "status", instance(), [(2, 12), (2, 13)])
        assert seen == ["2.12,2.13"]
        assert values == [{"aid": 2, "iid": 12, "value": True}]

    def test_status_error(self) -> None:
        with pytest.raises(TransportFailure):
            call(lambda request: httpx.Response(500), "status", instance(), [(2, 12)])


class TestReadFrame:
    def _reader(self, data: bytes) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return reader

    def test_event_frame(self) -> None:
        body = b'{"characteristics":[{"aid":2,"iid":12,"value":true}]}'
        raw = b"EVENT/1.0 200 OK\r\nContent-Type: application/hap+json\r\nContent-Length: %d\r\n\r\n" % len(body) + body

        async def scenario():
            return await read_frame(self._reader(raw))

        start, headers, payload = asyncio.run(scenario())
        assert start == "EVENT/1.0 200 OK"
        assert headers["content-type"] == "application/hap+json"
        assert json.loads(payload)["characteristics"][0]["value"] is True

    def test_empty_response(self) -> None:
        async def scenario():
            return await read_frame(self._reader(b"HTTP/1.1 204 No Content\r\n\r\n"))

        start, headers, payload = asyncio.run(scenario())
        assert start == "HTTP/1.1 204 No Content"
        assert headers == {}
        assert payload == b""


async def _hap_server(status: int, event: bytes = b"", raw: bytes = b""):
    """A one-connection HAP endpoint that answers the subscription then pushes ``event``."""
    requests = []

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        start, headers, body = await read_frame(reader)
        requests.append((start, headers, json.loads(body)))
        writer.write(b"HTTP/1.1 %d Status\r\nContent-Length: 0\r\n\r\n" % status)
        if event:
            writer.write(b"EVENT/1.0 200 OK\r\nContent-Length: %d\r\n\r\n" % len(event) + event)
        writer.write(raw)
        await writer.drain()
        try:
            await reader.read()
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port, requests


class TestEventSubscription:
    def test_subscribe_then_receive_events(self) -> None:
        event = b'{"characteristics":[{"aid":2,"iid":12,"value":false}]}'
        received = []

        async def scenario() -> None:
            server, port, requests = await _hap_server(204, event)
            client = HomebridgeClient(pin=PIN, timeout=2)
            arrived = asyncio.Event()

            def on_event(*args) -> None:
                received.append(args)
                arrived.set()

            client.on_event = on_event
            target = instance(ip_address="127.0.0.1", port=port)
            try:
                await client.subscribe(target, [(2, 12), (2, 13)])
                await asyncio.wait_for(arrived.wait(), 2)
                assert client.is_listening(target)
                start, headers, body = requests[0]
                assert start.startswith("PUT /characteristics")
                assert headers["authorization"] == PIN
                assert body == {
                    "characteristics": [{"aid": 2, "iid": 12, "ev": True}, {"aid": 2, "iid": 13, "ev": True}]
                }
            finally:
                await client.close()
                server.close()
                await server.wait_closed()

        asyncio.run(scenario())
        assert [event[0] for event in received] == ["127.0.0.1"]
        assert [event[2:] for event in received] == [(2, 12, False)]

    def test_rejected_subscription(self) -> None:
        async def scenario() -> None:
            server, port, _ = await _hap_server(470)
            client = HomebridgeClient(pin=PIN, timeout=2)
            try:
                with pytest.raises(SubscriptionFailure):
                    await client.subscribe(instance(ip_address="127.0.0.1", port=port), [(2, 12)])
            finally:
                await client.close()
                server.close()
                await server.wait_closed()

        asyncio.run(scenario())

    def test_unreachable_instance(self) -> None:
        async def scenario() -> None:
            server, port, _ = await _hap_server(204)
            server.close()
            await server.wait_closed()
            client = HomebridgeClient(pin=PIN, timeout=2)
            try:
                with pytest.raises(SubscriptionFailure):
                    await client.subscribe(instance(ip_address="127.0.0.1", port=port), [(2, 12)])
            finally:
                await client.close()

        asyncio.run(scenario())


def test_garbled_frame_closes_event_connection() -> None:
    async def scenario() -> None:
        server, port, _ = await _hap_server(204, raw=b"EVENT/1.0 200 OK\r\nContent-Length: many\r\n\r\n")
        client = HomebridgeClient(pin=PIN, timeout=2)
        target = instance(ip_address="127.0.0.1", port=port)
        try:
            await client.subscribe(target, [(2, 12)])
            for _ in range(100):
                if not client.is_listening(target):
                    break
                await asyncio.sleep(0.01)
            assert not client.is_listening(target)
            channel = client._channels[f"127.0.0.1:{port}"]
            assert channel._task.exception() is None
        finally:
            await client.close()
            server.close()
            await server.wait_closed()

    asyncio.run(scenario())
