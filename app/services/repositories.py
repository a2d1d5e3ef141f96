"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Firestore).

Both repositories expose the same methods and return the typed schemas from
``app.schemas``. Backend exceptions are converted to ``BackendUnavailable``
here; nothing above this module sees a raw SQLAlchemy or Google API error.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import BackendUnavailable
from app import models
from app.schemas import Event, MenuCourse, Notification, Photo, User
from app.schemas.parsing import (
    parse_course,
    parse_event,
    parse_notification,
    parse_photo,
    parse_user,
)
from app.services.firebase_client import get_firestore_client

logger = logging.getLogger(__name__)

EVENT_FIELDS = (
    "id", "title", "description", "date", "location", "latitude", "longitude",
    "event_type", "organizer_id", "access_password", "qr_code", "is_live",
    "status", "created_at", "expires_at",
)
COURSE_FIELDS = ("id", "type", "name", "description", "is_served")
PHOTO_FIELDS = (
    "id", "event_id", "uploaded_by", "url", "thumbnail", "caption",
    "storage_path", "thumbnail_path", "uploaded_at",
)

# Firestore batches accept at most 500 writes
FIRESTORE_BATCH_LIMIT = 500


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


def get_repository(db: Optional[Session] = None):
    """Return the repository for the configured backend"""
    if use_firestore():
        return FirestoreRepository(get_firestore_client())
    return SqlRepository(db)


def _columns(row: Any, fields: Iterable[str]) -> Dict[str, Any]:
    return {field: getattr(row, field) for field in fields}


# -------- SQLAlchemy repository --------

class SqlRepository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, step: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {step}: {e}")
            raise BackendUnavailable(step=step) from e

    def _event(self, row: models.Event) -> Event:
        return parse_event(
            _columns(row, EVENT_FIELDS),
            organizer=row.organizer,
            menu=[_columns(course, COURSE_FIELDS) for course in row.menu],
            participants=[p.user_id for p in row.participants],
        )

    # Users

    def get_user(self, user_id: str) -> Optional[User]:
        with self._guard("get_user"):
            row = self.db.get(models.User, user_id)
            return parse_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._guard("get_user_by_email"):
            row = self.db.query(models.User).filter(models.User.email == email).first()
            return parse_user(row) if row else None

    def create_user(self, user_id: str, email: str, name: str, avatar: Optional[str] = None) -> User:
        with self._guard("create_user"):
            row = models.User(id=user_id, email=email, name=name, avatar=avatar,
                              created_at=datetime.utcnow())
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return parse_user(row)

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        with self._guard("update_user"):
            row = self.db.get(models.User, user_id)
            if not row:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            self.db.commit()
            self.db.refresh(row)
            return parse_user(row)

    def set_push_token(self, user_id: str, token: str) -> None:
        with self._guard("set_push_token"):
            self.db.merge(models.PushToken(user_id=user_id, token=token, updated_at=datetime.utcnow()))
            self.db.commit()

    def get_push_tokens(self, user_ids: List[str]) -> Dict[str, str]:
        if not user_ids:
            return {}
        with self._guard("get_push_tokens"):
            rows = self.db.query(models.PushToken).filter(models.PushToken.user_id.in_(user_ids)).all()
            return {row.user_id: row.token for row in rows}

    # Events

    def create_event_bundle(self, event: Dict[str, Any], courses: List[Dict[str, Any]],
                            organizer_id: str, joined_at: datetime) -> Event:
        """Insert event, menu and organizer membership in one transaction"""
        with self._guard("create_event"):
            row = models.Event(**event)
            self.db.add(row)
            for position, course in enumerate(courses):
                self.db.add(models.MenuCourse(event_id=event["id"], position=position, **course))
            self.db.add(models.EventParticipant(
                event_id=event["id"], user_id=organizer_id, role="organizer", joined_at=joined_at
            ))
            self.db.commit()
            self.db.refresh(row)
            return self._event(row)

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._guard("get_event"):
            row = self.db.get(models.Event, event_id)
            return self._event(row) if row else None

    def list_events_for_user(self, user_id: str) -> List[Event]:
        with self._guard("list_events"):
            member_of = select(models.EventParticipant.event_id).where(
                models.EventParticipant.user_id == user_id
            )
            rows = self.db.query(models.Event).filter(
                or_(models.Event.organizer_id == user_id, models.Event.id.in_(member_of))
            ).order_by(models.Event.date.asc()).all()
            return [self._event(row) for row in rows]

    def add_participant(self, event_id: str, user_id: str, role: str, joined_at: datetime) -> bool:
        """Insert a membership row; False if the user is already a member"""
        try:
            self.db.add(models.EventParticipant(
                event_id=event_id, user_id=user_id, role=role, joined_at=joined_at
            ))
            self.db.commit()
            return True
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Participant {user_id} already in event {event_id}")
            return False
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during add_participant: {e}")
            raise BackendUnavailable(step="add_participant") from e

    def update_event(self, event_id: str, fields: Dict[str, Any]) -> None:
        with self._guard("update_event"):
            self.db.query(models.Event).filter(models.Event.id == event_id).update(fields)
            self.db.commit()

    def update_event_status(self, event_id: str, expected_status: str, fields: Dict[str, Any]) -> bool:
        """Apply fields only while the stored status is expected_status"""
        with self._guard("update_event_status"):
            updated = self.db.query(models.Event).filter(
                models.Event.id == event_id,
                models.Event.status == expected_status,
            ).update(fields)
            self.db.commit()
            return updated > 0

    def delete_event(self, event_id: str) -> None:
        with self._guard("delete_event"):
            row = self.db.get(models.Event, event_id)
            if row:
                self.db.delete(row)
                self.db.commit()

    def get_course(self, course_id: str) -> Optional[Tuple[str, MenuCourse]]:
        with self._guard("get_course"):
            row = self.db.get(models.MenuCourse, course_id)
            if not row:
                return None
            return row.event_id, parse_course(_columns(row, COURSE_FIELDS))

    def mark_course_served(self, course_id: str) -> bool:
        """Flip is_served to true; False if it already was"""
        with self._guard("mark_course_served"):
            updated = self.db.query(models.MenuCourse).filter(
                models.MenuCourse.id == course_id,
                models.MenuCourse.is_served == False,  # noqa: E712
            ).update({"is_served": True})
            self.db.commit()
            return updated > 0

    # Photos

    def add_photo(self, photo: Dict[str, Any]) -> Photo:
        with self._guard("add_photo"):
            row = models.Photo(**photo)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return parse_photo(_columns(row, PHOTO_FIELDS), uploader=row.uploader)

    def get_photo(self, photo_id: str) -> Optional[Photo]:
        with self._guard("get_photo"):
            row = self.db.get(models.Photo, photo_id)
            return parse_photo(_columns(row, PHOTO_FIELDS), uploader=row.uploader) if row else None

    def list_photos(self, event_id: str) -> List[Photo]:
        with self._guard("list_photos"):
            rows = self.db.query(models.Photo).filter(
                models.Photo.event_id == event_id
            ).order_by(models.Photo.uploaded_at.desc()).all()
            return [parse_photo(_columns(row, PHOTO_FIELDS), uploader=row.uploader) for row in rows]

    def delete_photo(self, photo_id: str) -> None:
        with self._guard("delete_photo"):
            self.db.query(models.Photo).filter(models.Photo.id == photo_id).delete()
            self.db.commit()

    # Notifications

    def add_notification(self, notification: Dict[str, Any]) -> Notification:
        with self._guard("add_notification"):
            row = models.Notification(**notification)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return parse_notification(row)

    def list_notifications(self, event_id: str) -> List[Notification]:
        with self._guard("list_notifications"):
            rows = self.db.query(models.Notification).filter(
                models.Notification.event_id == event_id
            ).order_by(models.Notification.sent_at.desc()).all()
            return [parse_notification(row) for row in rows]


# -------- Firestore repository --------

# Transaction bodies; Firestore reruns them when a read document changes
# before commit.

def _update_if_status(transaction, ref, expected_status: str, fields: Dict[str, Any]) -> bool:
    snapshot = ref.get(transaction=transaction)
    if not snapshot.exists or (snapshot.to_dict() or {}).get("status") != expected_status:
        return False
    transaction.update(ref, fields)
    return True


def _mark_served(transaction, ref) -> bool:
    snapshot = ref.get(transaction=transaction)
    if not snapshot.exists or (snapshot.to_dict() or {}).get("is_served"):
        return False
    transaction.update(ref, {"is_served": True})
    return True


class FirestoreRepository:
    """Same contract as SqlRepository over top-level Firestore collections.

    Memberships live at ``event_participants/{event_id}_{user_id}`` so the
    document id itself enforces one row per user and event.
    """

    def __init__(self, fs):
        self.fs = fs

    @contextmanager
    def _guard(self, step: str):
        try:
            yield
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore error during {step}: {e}")
            raise BackendUnavailable(step=step) from e

    @staticmethod
    def _doc(snapshot) -> Dict[str, Any]:
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        return data

    def _by_event(self, collection: str, event_id: str) -> List[Dict[str, Any]]:
        docs = self.fs.collection(collection).where("event_id", "==", event_id).get()
        return [self._doc(d) for d in docs]

    def _participant_ref(self, event_id: str, user_id: str):
        return self.fs.collection("event_participants").document(f"{event_id}_{user_id}")

    def _load_event(self, snapshot) -> Event:
        data = self._doc(snapshot)
        organizer = self.fs.collection("users").document(data.get("organizer_id", "")).get()
        courses = sorted(self._by_event("menu_courses", snapshot.id), key=lambda c: c.get("position", 0))
        members = sorted(self._by_event("event_participants", snapshot.id), key=lambda p: p.get("joined_at"))
        return parse_event(
            data,
            organizer=self._doc(organizer) if organizer.exists else None,
            menu=[{k: c.get(k) for k in COURSE_FIELDS} for c in courses],
            participants=[p["user_id"] for p in members if p.get("user_id")],
        )

    def _load_photo(self, data: Dict[str, Any]) -> Photo:
        uploader = self.fs.collection("users").document(data.get("uploaded_by", "")).get()
        return parse_photo(data, uploader=self._doc(uploader) if uploader.exists else None)

    # Users

    def get_user(self, user_id: str) -> Optional[User]:
        with self._guard("get_user"):
            doc = self.fs.collection("users").document(user_id).get()
            return parse_user(self._doc(doc)) if doc.exists else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._guard("get_user_by_email"):
            docs = self.fs.collection("users").where("email", "==", email).limit(1).get()
            return parse_user(self._doc(docs[0])) if docs else None

    def create_user(self, user_id: str, email: str, name: str, avatar: Optional[str] = None) -> User:
        with self._guard("create_user"):
            data = {"email": email, "name": name, "avatar": avatar, "created_at": datetime.utcnow()}
            self.fs.collection("users").document(user_id).set(data)
            return parse_user({"id": user_id, **data})

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        with self._guard("update_user"):
            ref = self.fs.collection("users").document(user_id)
            if not ref.get().exists:
                return None
            ref.set(fields, merge=True)
            return parse_user(self._doc(ref.get()))

    def set_push_token(self, user_id: str, token: str) -> None:
        with self._guard("set_push_token"):
            self.fs.collection("push_tokens").document(user_id).set({
                "token": token,
                "updated_at": datetime.utcnow(),
            })

    def get_push_tokens(self, user_ids: List[str]) -> Dict[str, str]:
        with self._guard("get_push_tokens"):
            tokens: Dict[str, str] = {}
            for user_id in user_ids:
                doc = self.fs.collection("push_tokens").document(user_id).get()
                if doc.exists and doc.to_dict().get("token"):
                    tokens[user_id] = doc.to_dict()["token"]
            return tokens

    # Events

    def create_event_bundle(self, event: Dict[str, Any], courses: List[Dict[str, Any]],
                            organizer_id: str, joined_at: datetime) -> Event:
        """Write event, menu and organizer membership in one atomic batch"""
        with self._guard("create_event"):
            event_id = event["id"]
            batch = self.fs.batch()
            batch.set(self.fs.collection("events").document(event_id),
                      {k: v for k, v in event.items() if k != "id"})
            for position, course in enumerate(courses):
                data = {k: v for k, v in course.items() if k != "id"}
                data.update({"event_id": event_id, "position": position})
                batch.set(self.fs.collection("menu_courses").document(course["id"]), data)
            batch.set(self._participant_ref(event_id, organizer_id), {
                "event_id": event_id,
                "user_id": organizer_id,
                "role": "organizer",
                "joined_at": joined_at,
            })
            batch.commit()
            return self._load_event(self.fs.collection("events").document(event_id).get())

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._guard("get_event"):
            doc = self.fs.collection("events").document(event_id).get()
            return self._load_event(doc) if doc.exists else None

    def list_events_for_user(self, user_id: str) -> List[Event]:
        with self._guard("list_events"):
            memberships = self.fs.collection("event_participants").where("user_id", "==", user_id).get()
            organized = self.fs.collection("events").where("organizer_id", "==", user_id).get()
            event_ids = {m.to_dict().get("event_id") for m in memberships} | {d.id for d in organized}

            events = []
            for event_id in event_ids:
                doc = self.fs.collection("events").document(event_id).get()
                if doc.exists:
                    events.append(self._load_event(doc))
            return sorted(events, key=lambda e: e.date)

    def add_participant(self, event_id: str, user_id: str, role: str, joined_at: datetime) -> bool:
        """Create the membership document; False if it already exists"""
        try:
            self._participant_ref(event_id, user_id).create({
                "event_id": event_id,
                "user_id": user_id,
                "role": role,
                "joined_at": joined_at,
            })
            return True
        except google_exceptions.AlreadyExists:
            logger.info(f"Participant {user_id} already in event {event_id}")
            return False
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore error during add_participant: {e}")
            raise BackendUnavailable(step="add_participant") from e

    def update_event(self, event_id: str, fields: Dict[str, Any]) -> None:
        with self._guard("update_event"):
            self.fs.collection("events").document(event_id).update(fields)

    def update_event_status(self, event_id: str, expected_status: str, fields: Dict[str, Any]) -> bool:
        with self._guard("update_event_status"):
            ref = self.fs.collection("events").document(event_id)
            return firestore.transactional(_update_if_status)(self.fs.transaction(), ref, expected_status, fields)

    def delete_event(self, event_id: str) -> None:
        with self._guard("delete_event"):
            refs = []
            for collection in ("menu_courses", "event_participants", "photos", "notifications"):
                docs = self.fs.collection(collection).where("event_id", "==", event_id).get()
                refs.extend(d.reference for d in docs)
            refs.append(self.fs.collection("events").document(event_id))

            for start in range(0, len(refs), FIRESTORE_BATCH_LIMIT):
                batch = self.fs.batch()
                for ref in refs[start:start + FIRESTORE_BATCH_LIMIT]:
                    batch.delete(ref)
                batch.commit()

    def get_course(self, course_id: str) -> Optional[Tuple[str, MenuCourse]]:
        with self._guard("get_course"):
            doc = self.fs.collection("menu_courses").document(course_id).get()
            if not doc.exists:
                return None
            data = self._doc(doc)
            return data.get("event_id"), parse_course({k: data.get(k) for k in COURSE_FIELDS})

    def mark_course_served(self, course_id: str) -> bool:
        with self._guard("mark_course_served"):
            ref = self.fs.collection("menu_courses").document(course_id)
            return firestore.transactional(_mark_served)(self.fs.transaction(), ref)

    # Photos

    def add_photo(self, photo: Dict[str, Any]) -> Photo:
        with self._guard("add_photo"):
            self.fs.collection("photos").document(photo["id"]).set(
                {k: v for k, v in photo.items() if k != "id"}
            )
            return self._load_photo(dict(photo))

    def get_photo(self, photo_id: str) -> Optional[Photo]:
        with self._guard("get_photo"):
            doc = self.fs.collection("photos").document(photo_id).get()
            return self._load_photo(self._doc(doc)) if doc.exists else None

    def list_photos(self, event_id: str) -> List[Photo]:
        with self._guard("list_photos"):
            photos = [self._load_photo(d) for d in self._by_event("photos", event_id)]
            return sorted(photos, key=lambda p: p.uploaded_at, reverse=True)

    def delete_photo(self, photo_id: str) -> None:
        with self._guard("delete_photo"):
            self.fs.collection("photos").document(photo_id).delete()

    # Notifications

    def add_notification(self, notification: Dict[str, Any]) -> Notification:
        with self._guard("add_notification"):
            self.fs.collection("notifications").document(notification["id"]).set(
                {k: v for k, v in notification.items() if k != "id"}
            )
            return parse_notification(dict(notification))

    def list_notifications(self, event_id: str) -> List[Notification]:
        with self._guard("list_notifications"):
            notifications = [parse_notification(d) for d in self._by_event("notifications", event_id)]
            return sorted(notifications, key=lambda n: n.sent_at, reverse=True)
