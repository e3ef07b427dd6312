"""Tests for eprosys.changefeed.

The real adapter runs against a fake async client on its own event-loop
thread, so nothing here opens a websocket.
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from eprosys.changefeed import (
    ChangeEvent,
    ChangeType,
    ChannelStatus,
    SupabaseChangeFeed,
    parse_change,
)


# ----------------------------------------------------------------------
# payload parsing
# ----------------------------------------------------------------------
def test_parse_change_python_client_shape() -> None:
    payload = {
        "data": {
            "type": "UPDATE",
            "table": "pendencias",
            "record": {"id": 1, "status": "concluido"},
            "old_record": {"id": 1},
            "commit_timestamp": "2024-01-01T10:00:00Z",
        },
        "ids": [1],
    }

    event = parse_change(payload)

    assert event == ChangeEvent(
        table="pendencias",
        type=ChangeType.UPDATE,
        new={"id": 1, "status": "concluido"},
        old={"id": 1},
        commit_timestamp="2024-01-01T10:00:00Z",
    )


def test_parse_change_js_shape() -> None:
    event = parse_change({"eventType": "DELETE", "table": "faqs", "new": {}, "old": {"id": 7}})

    assert event.type is ChangeType.DELETE
    assert event.record_id == 7


@pytest.mark.parametrize("payload", [None, "INSERT", {}, {"data": {"type": "TRUNCATE"}}])
def test_parse_change_rejects_unknown_payloads(payload) -> None:
    assert parse_change(payload) is None


def test_record_id_falls_back_to_old_record() -> None:
    event = ChangeEvent("faqs", ChangeType.UPDATE, new={}, old={"id": 3})
    assert event.record_id == 3


class _State:
    value = "SUBSCRIBED"


@pytest.mark.parametrize(
    "state, expected",
    [
        ("SUBSCRIBED", ChannelStatus.SUBSCRIBED),
        ("timed_out", ChannelStatus.TIMED_OUT),
        (_State(), ChannelStatus.SUBSCRIBED),
        ("JOINING", ChannelStatus.CHANNEL_ERROR),
        (None, ChannelStatus.CHANNEL_ERROR),
    ],
)
def test_channel_status_from_state(state, expected) -> None:
    assert ChannelStatus.from_state(state) is expected


# ----------------------------------------------------------------------
# adapter
# ----------------------------------------------------------------------
class FakeChannel:
    def __init__(self, topic, status="SUBSCRIBED"):
        self.topic = topic
        self.status = status
        self.event = None
        self.callback = None
        self.table = None
        self.schema = None
        self.status_callback = None

    def on_postgres_changes(self, event, callback, table="*", schema="public", filter=None):
        self.event = event
        self.callback = callback
        self.table = table
        self.schema = schema
        return self

    async def subscribe(self, callback=None):
        self.status_callback = callback
        callback(self.status, None)
        return self


class FakeAsyncClient:
    def __init__(self, status="SUBSCRIBED"):
        self.status = status
        self.channels = []
        self.removed = []

    def channel(self, topic, params=None):
        ch = FakeChannel(topic, self.status)
        self.channels.append(ch)
        return ch

    async def remove_channel(self, channel):
        self.removed.append(channel)


def _feed(client, **kwargs):
    async def factory(url, key):
        await asyncio.sleep(0)
        return client

    return SupabaseChangeFeed("https://exemplo.supabase.co", "anon", client_factory=factory, timeout=5, **kwargs)


@pytest.fixture
def client():
    return FakeAsyncClient()


@pytest.fixture
def feed(client):
    f = _feed(client)
    yield f
    f.close()


def test_subscribe_registers_postgres_changes(feed, client) -> None:
    statuses = []

    feed.subscribe("pendencias", lambda e: None, statuses.append)

    assert feed.is_running
    [ch] = client.channels
    assert ch.topic == "pendencias-changes"
    assert (ch.event, ch.table, ch.schema) == ("*", "pendencias", "public")
    assert statuses == [ChannelStatus.SUBSCRIBED]


def test_events_are_parsed_and_forwarded(feed, client) -> None:
    events = []
    feed.subscribe("faqs", events.append, lambda s: None)
    ch = client.channels[0]

    ch.callback({"data": {"type": "INSERT", "record": {"id": 1, "title": "Novo"}, "old_record": {}}})
    ch.callback({"data": {"type": "TRUNCATE"}})

    [event] = events
    assert event.table == "faqs"
    assert event.type is ChangeType.INSERT
    assert event.new == {"id": 1, "title": "Novo"}


def test_callback_errors_are_logged_not_raised(feed, client, caplog) -> None:
    def boom(event):
        raise RuntimeError("quebrou")

    feed.subscribe("faqs", boom, lambda s: None)

    with caplog.at_level(logging.ERROR, logger="eprosys.changefeed"):
        client.channels[0].callback({"data": {"type": "DELETE", "old_record": {"id": 1}}})

    assert "falha ao aplicar evento realtime em faqs" in caplog.text


def test_channel_errors_reach_status_callback() -> None:
    client = FakeAsyncClient(status="CHANNEL_ERROR")
    feed = _feed(client)
    statuses = []
    try:
        feed.subscribe("speds", lambda e: None, statuses.append)
        client.channels[0].status_callback("CLOSED", None)
    finally:
        feed.close()

    assert statuses == [ChannelStatus.CHANNEL_ERROR, ChannelStatus.CLOSED]


def test_unsubscribe_removes_channel(feed, client) -> None:
    unsubscribe = feed.subscribe("authors", lambda e: None, lambda s: None)

    unsubscribe()
    unsubscribe()

    assert client.removed == client.channels


def test_close_removes_channels_and_stops_loop(client) -> None:
    feed = _feed(client)
    feed.subscribe("authors", lambda e: None, lambda s: None)
    feed.subscribe("speds", lambda e: None, lambda s: None)

    feed.close()

    assert not feed.is_running
    assert len(client.removed) == 2


def test_factory_failure_propagates_and_cleans_up() -> None:
    async def factory(url, key):
        raise ConnectionError("sem rede")

    feed = SupabaseChangeFeed("https://exemplo.supabase.co", "anon", client_factory=factory, timeout=5)

    with pytest.raises(ConnectionError):
        feed.subscribe("faqs", lambda e: None, lambda s: None)

    assert not feed.is_running
