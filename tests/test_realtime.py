import asyncio
import time
from datetime import datetime

import pytest
from starlette.websockets import WebSocketDisconnect

import realtime
from conftest import drain
from realtime import change_event, conversation_channel, publish_change, requests_channel


def test_publish_reaches_every_subscriber(broker):
    async def scenario():
        first = broker.subscribe("conversation:1")
        second = broker.subscribe("conversation:1")
        other = broker.subscribe("conversation:2")

        delivered = broker.publish("conversation:1", {"event": "messages.INSERT"})

        assert delivered == 2
        assert first.get_nowait() == {"event": "messages.INSERT"}
        assert second.get_nowait() == {"event": "messages.INSERT"}
        assert other.empty()

    asyncio.run(scenario())


def test_unsubscribe_drops_empty_channels(broker):
    async def scenario():
        queue = broker.subscribe("requests:a")
        assert broker.subscriber_count("requests:a") == 1
        broker.unsubscribe("requests:a", queue)
        assert broker.subscriber_count("requests:a") == 0
        assert broker.publish("requests:a", {"event": "x"}) == 0
        broker.unsubscribe("requests:a", queue)

    asyncio.run(scenario())


def test_full_queue_drops_events(broker):
    async def scenario():
        queue = broker.subscribe("notifications:a")
        assert broker.publish("notifications:a", {"event": "1"}) == 1
        assert broker.publish("notifications:a", {"event": "2"}) == 1
        assert broker.publish("notifications:a", {"event": "3"}) == 0
        assert queue.qsize() == 2

    asyncio.run(scenario())


def test_change_event_is_json_ready(broker):
    event = change_event("messages", "INSERT", {"created_at": datetime(2026, 10, 18, 12, 0)})
    assert event == {"event": "messages.INSERT", "data": {"created_at": "2026-10-18T12:00:00"}}

    async def scenario():
        queue = broker.subscribe(conversation_channel("r1"))
        publish_change(conversation_channel("r1"), "messages", "INSERT", {"id": "m1"}, target=broker)
        assert queue.get_nowait() == {"event": "messages.INSERT", "data": {"id": "m1"}}

    asyncio.run(scenario())


def test_websocket_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/notifications"):
            pass
    assert exc_info.value.code == 1008


def test_websocket_rejects_non_participants(client, make_member, pending_request):
    stranger = make_member("stranger-1", "Sam Stranger")
    token = stranger.headers["Authorization"].split()[1]
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/conversations/{pending_request['id']}?token={token}"):
            pass
    assert exc_info.value.code == 1008


def test_posted_message_reaches_conversation_channel(client, live_broker, borrower, pending_request):
    queue = live_broker.subscribe(conversation_channel(pending_request["id"]))

    response = client.post(
        f"/requests/{pending_request['id']}/messages", json={"content": "Still free?"}, headers=borrower.headers
    )

    events = drain(queue)
    assert [event["event"] for event in events] == ["messages.INSERT"]
    assert events[0]["data"]["id"] == response.json()["id"]
    assert events[0]["data"]["content"] == "Still free?"


def test_status_change_reaches_both_participants(client, live_broker, owner, borrower, pending_request):
    queues = [live_broker.subscribe(requests_channel(member.id)) for member in (owner, borrower)]

    client.post(f"/requests/{pending_request['id']}/respond", json={"decision": "accept"}, headers=owner.headers)

    for queue in queues:
        events = drain(queue)
        assert events
        assert {event["event"] for event in events} == {"borrow_requests.UPDATE"}
        assert {event["data"]["status"] for event in events} == {"accepted"}


def test_new_message_republishes_request(client, live_broker, owner, borrower, pending_request):
    url = f"/requests/{pending_request['id']}/messages"
    client.post(url, json={"content": "first"}, headers=borrower.headers)
    queue = live_broker.subscribe(requests_channel(owner.id))

    client.post(url, json={"content": "second"}, headers=borrower.headers)

    events = drain(queue)
    assert [event["event"] for event in events] == ["borrow_requests.UPDATE"]
    assert events[0]["data"]["id"] == pending_request["id"]
    assert events[0]["data"]["status"] == "negotiating"


def wait_for_listener(channel, timeout=2.0):
    deadline = time.monotonic() + timeout
    while realtime.broker.subscriber_count(channel) == 0:
        assert time.monotonic() < deadline, f"nobody subscribed to {channel}"
        time.sleep(0.01)


def test_websocket_streams_request_changes(client, owner, pending_request):
    token = owner.headers["Authorization"].split()[1]
    channel = requests_channel(owner.id)

    with client.websocket_connect(f"/ws/requests?token={token}") as websocket:
        wait_for_listener(channel)
        client.post(f"/requests/{pending_request['id']}/respond", json={"decision": "accept"}, headers=owner.headers)
        event = websocket.receive_json()

    assert event["event"] == "borrow_requests.UPDATE"
    assert event["data"]["id"] == pending_request["id"]
    assert event["data"]["status"] == "accepted"
