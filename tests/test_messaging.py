import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from marketplace.domain.messaging.notifier import ConnectionRegistry


class BrokenSocket:
    async def send_json(self, payload):
        raise RuntimeError("connection reset")


class RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, payload):
        self.sent.append(payload)


@pytest.fixture
def conversation(client, create_job):
    job = create_job(title="Brake pads")
    response = client.post(
        "/api/conversations",
        json={"jobId": job["id"], "customerId": "cust-1", "providerId": "prov-1"},
    )
    assert response.status_code == 200
    return response.json()


def send(client, conversation, sender_id, content):
    return client.post(
        "/api/messages",
        json={"conversationId": conversation["id"], "senderId": sender_id, "content": content},
    )


# ============================================================================
# CONVERSATIONS
# ============================================================================


def test_one_conversation_per_job(client, conversation):
    again = client.post(
        "/api/conversations",
        json={"jobId": conversation["jobId"], "customerId": "cust-2", "providerId": "prov-2"},
    )
    assert again.json()["id"] == conversation["id"]
    assert again.json()["customerId"] == "cust-1"

    by_job = client.get(f"/api/conversations/{conversation['jobId']}")
    assert by_job.json()["id"] == conversation["id"]


def test_conversation_lookup_without_one_returns_null(client, create_job):
    job = create_job()
    response = client.get(f"/api/conversations/{job['id']}")
    assert response.status_code == 200
    assert response.json() is None


def test_conversation_needs_existing_job(client):
    response = client.post(
        "/api/conversations", json={"jobId": "missing", "customerId": "c", "providerId": "p"}
    )
    assert response.status_code == 404


def test_list_conversations_for_user(client, conversation, storage):
    storage.update_job(conversation["jobId"], {"customer_access_token": "acc-tok"})
    send(client, conversation, "cust-1", "Can you come earlier?")
    send(client, conversation, "prov-1", "Sure, 9am works")

    listed = client.get("/api/conversations", params={"userId": "prov-1"}).json()
    assert len(listed) == 1
    assert listed[0]["id"] == conversation["id"]
    assert listed[0]["job"]["title"] == "Brake pads"
    assert "customerAccessToken" not in listed[0]["job"]
    assert listed[0]["lastMessage"] == "Sure, 9am works"

    assert client.get("/api/conversations", params={"userId": "someone"}).json() == []
    missing = client.get("/api/conversations")
    assert missing.status_code == 400
    assert missing.json() == {"error": "userId is required"}


# ============================================================================
# MESSAGES
# ============================================================================


def test_messages_are_returned_oldest_first(client, conversation):
    first = send(client, conversation, "cust-1", "Hello").json()
    second = send(client, conversation, "prov-1", "Hi there").json()

    messages = client.get(f"/api/messages/{conversation['id']}").json()
    assert [m["id"] for m in messages] == [first["id"], second["id"]]
    assert messages[0]["senderId"] == "cust-1"


def test_outsider_cannot_post(client, conversation):
    response = send(client, conversation, "intruder", "Hi")
    assert response.status_code == 403
    assert client.get(f"/api/messages/{conversation['id']}").json() == []


def test_empty_message_is_rejected(client, conversation):
    assert send(client, conversation, "cust-1", "").status_code == 400


def test_message_to_unknown_conversation(client):
    response = client.post(
        "/api/messages", json={"conversationId": "nope", "senderId": "a", "content": "Hi"}
    )
    assert response.status_code == 404


# ============================================================================
# WEBSOCKET
# ============================================================================


def test_participant_receives_new_message(client, conversation):
    with client.websocket_connect("/ws?userId=prov-1") as websocket:
        message = send(client, conversation, "cust-1", "Running late").json()
        event = websocket.receive_json()

    assert event["type"] == "new_message"
    assert event["conversationId"] == conversation["id"]
    assert event["jobTitle"] == "Brake pads"
    assert event["message"]["id"] == message["id"]
    assert event["message"]["content"] == "Running late"


def test_socket_without_user_id_is_closed(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_text()
    assert exc_info.value.code == 1008


def test_failed_send_drops_connection():
    registry = ConnectionRegistry()
    registry.connect("prov-1", BrokenSocket())

    assert asyncio.run(registry.send_to("prov-1", {"type": "ping"})) is False
    assert not registry.is_connected("prov-1")


def test_broadcast_skips_offline_and_duplicate_users():
    registry = ConnectionRegistry()
    socket = RecordingSocket()
    registry.connect("cust-1", socket)

    delivered = asyncio.run(registry.broadcast(["cust-1", "cust-1", "prov-1"], {"type": "ping"}))
    assert delivered == 1
    assert socket.sent == [{"type": "ping"}]


def test_reconnect_replaces_previous_socket():
    registry = ConnectionRegistry()
    old, new = RecordingSocket(), RecordingSocket()
    registry.connect("cust-1", old)
    registry.connect("cust-1", new)

    registry.disconnect("cust-1", old)
    assert registry.is_connected("cust-1")
    asyncio.run(registry.send_to("cust-1", {"type": "ping"}))
    assert old.sent == []
    assert new.sent == [{"type": "ping"}]
