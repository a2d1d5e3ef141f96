"""
Tests for the event store adapter
"""

import os

import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy.exc import SQLAlchemyError

from app import models
from app.core.errors import BackendUnavailable, InvalidCredentials, InvalidTransition, NotFoundError
from app.schemas import MenuCourseCreate
from app.services import event_store, invitation

from conftest import EVENT_DATE

def test_create_event_scenario(store):
    """Organizer u1 creates a one-course dinner"""
    event = store.create_event(
        organizer_id="u1",
        title="Dinner",
        date=EVENT_DATE,
        location="Loc",
        menu=[MenuCourseCreate(name="Soup")],
    )

    assert event.status == "upcoming"
    assert event.is_live is False
    assert event.participants == ["u1"]
    assert len(event.menu) == 1
    assert event.menu[0].is_served is False
    assert event.expires_at == EVENT_DATE + timedelta(days=180)
    assert event.organizer.name == "Olivia"
    assert invitation.decode(event.qr_code) == (event.id, event.access_password)

def test_organizer_is_participant_on_every_read(store, dinner):
    store.cache.clear()
    reloaded = store.get_event_by_id(dinner.id)

    assert "u1" in reloaded.participants
    assert dinner.id in [e.id for e in store.list_events_for_user("u1")]

def test_aware_dates_are_stored_as_utc(store):
    date = datetime(2030, 1, 1, 20, 0, tzinfo=timezone(timedelta(hours=2)))
    event = store.create_event("u1", "Brunch", date, "Loc", [MenuCourseCreate(name="Eggs")])

    assert event.date == datetime(2030, 1, 1, 18, 0)
    assert event.expires_at == datetime(2030, 6, 30, 18, 0)

def test_menu_keeps_organizer_order(dinner):
    assert [c.name for c in dinner.menu] == ["Soup", "Roast"]
    assert dinner.menu[1].type == "main"
    assert dinner.menu[1].description == "With potatoes"

def test_get_missing_event(store):
    with pytest.raises(NotFoundError):
        store.get_event_by_id("missing")

def test_create_failure_leaves_nothing_behind(store, db_session, monkeypatch):
    def failing_commit():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(BackendUnavailable) as excinfo:
        store.create_event("u1", "Dinner", EVENT_DATE, "Loc", [MenuCourseCreate(name="Soup")])
    monkeypatch.undo()

    assert excinfo.value.step == "create_event"
    assert "event_id" in excinfo.value.details
    assert db_session.query(models.Event).count() == 0
    assert db_session.query(models.MenuCourse).count() == 0
    assert db_session.query(models.EventParticipant).count() == 0

def test_list_events_for_user_by_date(store):
    later = store.create_event("u1", "Later", EVENT_DATE + timedelta(days=3), "Loc", [MenuCourseCreate(name="A")])
    sooner = store.create_event("u2", "Sooner", EVENT_DATE, "Loc", [MenuCourseCreate(name="B")])
    store.create_event("u3", "Elsewhere", EVENT_DATE, "Loc", [MenuCourseCreate(name="C")])

    store.join_event_with_password(sooner.id, sooner.access_password, "u1")

    assert [e.title for e in store.list_events_for_user("u1")] == ["Sooner", "Later"]
    assert [e.title for e in store.list_events_for_user("u2")] == ["Sooner"]

def test_join_with_wrong_then_right_password(store, dinner):
    with pytest.raises(InvalidCredentials):
        store.join_event_with_password(dinner.id, "WRONG1", "u2")
    assert "u2" not in store.get_event_by_id(dinner.id).participants

    result = store.join_event_with_password(dinner.id, dinner.access_password, "u2")

    assert result.already_member is False
    assert result.event.participants == ["u1", "u2"]

def test_join_unknown_event_is_invalid_credentials(store):
    with pytest.raises(InvalidCredentials):
        store.join_event_with_password("missing", "ABCDEF", "u2")

def test_join_accepts_lowercase_password(store, dinner):
    result = store.join_event_with_password(dinner.id, f" {dinner.access_password.lower()} ", "u2")

    assert "u2" in result.event.participants

def test_join_twice_is_idempotent(store, dinner, db_session):
    store.join_event_with_password(dinner.id, dinner.access_password, "u2")
    second = store.join_event_with_password(dinner.id, dinner.access_password, "u2")

    assert second.already_member is True
    assert db_session.query(models.EventParticipant).filter_by(event_id=dinner.id, user_id="u2").count() == 1

def test_organizer_join_is_already_member(store, dinner):
    assert store.join_event_with_password(dinner.id, dinner.access_password, "u1").already_member is True

def test_racing_duplicate_insert_counts_as_member(store, dinner, repo, monkeypatch):
    """Both joins passed the membership check; the second insert hits the unique key"""
    store.join_event_with_password(dinner.id, dinner.access_password, "u2")
    stale = repo.get_event(dinner.id).model_copy(update={"participants": ["u1"]})
    monkeypatch.setattr(repo, "get_event", lambda event_id: stale)

    result = store.join_event_with_password(dinner.id, dinner.access_password, "u2")

    assert result.already_member is True

def test_status_and_live_flag_written_together(store, dinner):
    active = store.update_event_status(dinner.id, "active", expected_status="upcoming")
    assert (active.status, active.is_live) == ("active", True)

    cancelled = store.cancel_event(dinner.id)
    assert (cancelled.status, cancelled.is_live) == ("cancelled", False)

def test_mark_course_served_is_idempotent(store, dinner):
    course_id = dinner.menu[0].id

    course, changed = store.mark_course_served(course_id)
    assert course.is_served is True
    assert changed is True

    course, changed = store.mark_course_served(course_id)
    assert course.is_served is True
    assert changed is False

    menu = store.get_event_by_id(dinner.id).menu
    assert [c.is_served for c in menu] == [True, False]

def test_mark_missing_course(store):
    with pytest.raises(NotFoundError):
        store.mark_course_served("missing")

def test_regenerate_password_invalidates_old_token(store, dinner):
    old = invitation.decode(dinner.qr_code)

    password, token = store.regenerate_password(dinner.id)

    assert password != dinner.access_password
    assert token != dinner.qr_code
    assert invitation.decode(token) == (dinner.id, password)
    with pytest.raises(InvalidCredentials):
        store.join_event_with_password(old.event_id, old.password, "u2")
    assert store.join_event_with_password(dinner.id, password, "u2").already_member is False

def test_regenerate_never_reissues_current_password(store, dinner, monkeypatch):
    passwords = iter([dinner.access_password, "NEWPW1"])
    monkeypatch.setattr(event_store, "new_join_password", lambda length: next(passwords))

    password, token = store.regenerate_password(dinner.id)

    assert password == "NEWPW1"
    assert token.startswith(f"augevent://{dinner.id}||NEWPW1#")

def test_delete_event_cascades(store, dinner, repo, db_session, object_storage):
    store.join_event_with_password(dinner.id, dinner.access_password, "u2")
    url = object_storage.put(f"events/{dinner.id}/photos/1_u2.jpg", b"jpeg", "image/jpeg")
    repo.add_photo({
        "id": "p1",
        "event_id": dinner.id,
        "uploaded_by": "u2",
        "url": url,
        "storage_path": f"events/{dinner.id}/photos/1_u2.jpg",
        "uploaded_at": datetime.utcnow(),
    })
    repo.add_notification({
        "id": "n1",
        "event_id": dinner.id,
        "type": "event_update",
        "title": "Hi",
        "message": "Welcome",
        "sent_at": datetime.utcnow(),
    })

    store.delete_event(dinner.id)

    with pytest.raises(NotFoundError):
        store.get_event_by_id(dinner.id)
    for model in (models.MenuCourse, models.EventParticipant, models.Photo, models.Notification):
        assert db_session.query(model).count() == 0
    assert not os.path.exists(object_storage._full_path(f"events/{dinner.id}/photos/1_u2.jpg"))

def test_cache_serves_reads_until_a_write(store, dinner, repo):
    store.get_event_by_id(dinner.id)
    repo.update_event(dinner.id, {"title": "Changed elsewhere"})

    assert store.get_event_by_id(dinner.id).title == "Dinner"

    store.update_event_status(dinner.id, "active", expected_status="upcoming")
    assert store.get_event_by_id(dinner.id).title == "Changed elsewhere"

def test_backend_failure_on_read_is_converted(store, db_session, monkeypatch):
    def failing_get(*args, **kwargs):
        raise SQLAlchemyError("connection refused")

    monkeypatch.setattr(db_session, "get", failing_get)

    with pytest.raises(BackendUnavailable) as excinfo:
        store.get_event_by_id("any")
    assert excinfo.value.step == "get_event"

def test_status_write_is_conditional_on_stored_status(store, dinner, repo):
    repo.update_event(dinner.id, {"status": "ended"})

    with pytest.raises(InvalidTransition) as excinfo:
        store.update_event_status(dinner.id, "active", expected_status="upcoming")

    assert excinfo.value.details == {"from": "ended", "to": "active"}
    assert repo.get_event(dinner.id).status == "ended"
    assert store.get_event_by_id(dinner.id).status == "ended"

def test_member_read_reloads_a_stale_roster(store, dinner, repo):
    store.get_event_by_id(dinner.id)
    repo.add_participant(dinner.id, "u2", "guest", datetime.utcnow())

    assert "u2" in store.get_event_for_member(dinner.id, "u2").participants
    assert "u2" in store.get_event_by_id(dinner.id).participants

def test_delete_event_keeps_going_when_a_file_cannot_be_removed(store, dinner, repo, db_session,
                                                               object_storage, monkeypatch):
    repo.add_photo({
        "id": "p1",
        "event_id": dinner.id,
        "uploaded_by": "u1",
        "url": "http://testserver/uploads/a.jpg",
        "storage_path": f"events/{dinner.id}/photos/a.jpg",
        "thumbnail_path": f"events/{dinner.id}/photos/thumbs/a.jpg",
        "uploaded_at": datetime.utcnow(),
    })
    attempted = []

    def failing_delete(path):
        attempted.append(path)
        raise BackendUnavailable("Failed to delete photo", step="delete_object")

    monkeypatch.setattr(object_storage, "delete", failing_delete)

    store.delete_event(dinner.id)

    assert db_session.query(models.Event).count() == 0
    assert db_session.query(models.Photo).count() == 0
    assert len(attempted) == 2

def test_files_are_kept_when_the_row_delete_fails(store, dinner, repo, object_storage, monkeypatch):
    path = f"events/{dinner.id}/photos/a.jpg"
    url = object_storage.put(path, b"jpeg", "image/jpeg")
    repo.add_photo({
        "id": "p1",
        "event_id": dinner.id,
        "uploaded_by": "u1",
        "url": url,
        "storage_path": path,
        "uploaded_at": datetime.utcnow(),
    })

    def failing_delete(event_id):
        raise BackendUnavailable(step="delete_event")

    monkeypatch.setattr(repo, "delete_event", failing_delete)

    with pytest.raises(BackendUnavailable):
        store.delete_event(dinner.id)
    assert os.path.exists(object_storage._full_path(path))
