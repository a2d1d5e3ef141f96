"""
Tests for notification persistence and best-effort delivery
"""

import asyncio
from datetime import datetime

import pytest

from app.core.errors import PermissionDenied
from app.services.notification_service import NotificationDispatcher, course_ready_text
from app.services.photo_service import PhotoService
from app.services.push_service import PushSender

from test_photo_service import png_bytes

class FakeWebSocketManager:
    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []

    async def broadcast_to_event(self, event_id, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.messages.append((event_id, message))

class RecordingPushSender(PushSender):
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, token, title, body, data=None):
        if self.fail:
            raise RuntimeError("FCM unavailable")
        self.sent.append((token, title, body, data))

@pytest.fixture
def joined(store, dinner):
    store.join_event_with_password(dinner.id, dinner.access_password, "u2")
    return store.get_event_by_id(dinner.id)

def test_course_ready_text():
    text = course_ready_text("Roast", "MAIN")

    assert text["title"] == "Roast is ready!"
    assert text["message"] == 'The main course "Roast" is now being served.'

def test_course_served_is_stored_and_delivered(store, repo, joined):
    ws = FakeWebSocketManager()
    push = RecordingPushSender()
    repo.set_push_token("u2", "token-u2")
    dispatcher = NotificationDispatcher(store, ws, push)
    course = joined.menu[1]

    notification = asyncio.run(dispatcher.notify_course_served(joined.id, course.id))

    assert notification.type == "course_ready"
    assert notification.title == "Roast is ready!"
    assert notification.data == {"course_id": course.id, "course_name": "Roast", "course_type": "main"}

    assert len(ws.messages) == 1
    event_id, message = ws.messages[0]
    assert event_id == joined.id
    assert message["type"] == "notification"
    assert message["notification"]["id"] == notification.id

    assert len(push.sent) == 1
    token, title, _, data = push.sent[0]
    assert (token, title) == ("token-u2", "Roast is ready!")
    assert data["course_id"] == course.id
    assert data["event_id"] == joined.id

def test_delivery_failures_keep_the_record(store, repo, joined):
    repo.set_push_token("u2", "token-u2")
    dispatcher = NotificationDispatcher(store, FakeWebSocketManager(fail=True), RecordingPushSender(fail=True))

    notification = asyncio.run(dispatcher.notify_course_served(joined.id, joined.menu[0].id))

    stored = dispatcher.list_notifications(joined.id, "u2")
    assert [n.id for n in stored] == [notification.id]

def test_event_update_is_organizer_only(store, joined):
    dispatcher = NotificationDispatcher(store, FakeWebSocketManager(), RecordingPushSender())

    with pytest.raises(PermissionDenied):
        asyncio.run(dispatcher.post_event_update(joined.id, "u2", "Hi", "Hello"))

    update = asyncio.run(dispatcher.post_event_update(joined.id, "u1", "Dress code", "Smart casual"))
    assert update.type == "event_update"
    assert update.message == "Smart casual"

def test_notifications_listed_newest_first(store, joined):
    dispatcher = NotificationDispatcher(store, FakeWebSocketManager(), RecordingPushSender())
    first = asyncio.run(dispatcher.post_event_update(joined.id, "u1", "One", "First"))
    second = asyncio.run(dispatcher.post_event_update(joined.id, "u1", "Two", "Second"))

    listed = dispatcher.list_notifications(joined.id, "u1")

    assert [n.id for n in listed] == [second.id, first.id]

def test_outsiders_cannot_list_notifications(store, joined):
    dispatcher = NotificationDispatcher(store, FakeWebSocketManager(), RecordingPushSender())

    with pytest.raises(PermissionDenied):
        dispatcher.list_notifications(joined.id, "u3")

def test_photo_notification_skips_uploader(store, repo, joined, object_storage):
    repo.set_push_token("u1", "token-u1")
    repo.set_push_token("u2", "token-u2")
    push = RecordingPushSender()
    dispatcher = NotificationDispatcher(store, FakeWebSocketManager(), push)
    event, photo = PhotoService(store, object_storage).upload_photo(joined.id, "u2", png_bytes(), "image/png")

    notification = asyncio.run(dispatcher.notify_photo_uploaded(event, photo))

    assert notification.type == "photo_uploaded"
    assert notification.data == {"photo_id": photo.id}
    assert [sent[0] for sent in push.sent] == ["token-u1"]

def test_guest_who_joined_elsewhere_can_list_notifications(store, repo, dinner):
    store.get_event_by_id(dinner.id)
    repo.add_participant(dinner.id, "u3", "guest", datetime.utcnow())
    dispatcher = NotificationDispatcher(store, FakeWebSocketManager(), RecordingPushSender())

    assert dispatcher.list_notifications(dinner.id, "u3") == []
