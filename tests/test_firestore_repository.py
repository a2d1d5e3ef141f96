"""
Tests for the Firestore repository's transactional writes, against an
in-memory stand-in for the Firestore client
"""

from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from app.core.errors import BackendUnavailable
from app.services import repositories
from app.services.repositories import FirestoreRepository

class FakeSnapshot:
    def __init__(self, data):
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None

class FakeDocument:
    def __init__(self, docs, key):
        self.docs = docs
        self.key = key

    def get(self, transaction=None):
        if transaction is not None:
            transaction.reads.append(self.key)
        return FakeSnapshot(self.docs.get(self.key))

class FakeTransaction:
    def __init__(self, docs):
        self.docs = docs
        self.reads = []
        self.updates = []

    def update(self, ref, fields):
        self.updates.append((ref.key, fields))
        self.docs[ref.key].update(fields)

class FakeFirestore:
    def __init__(self, docs):
        self.docs = docs
        self.transactions = []

    def collection(self, name):
        return SimpleNamespace(document=lambda doc_id: FakeDocument(self.docs, (name, doc_id)))

    def transaction(self):
        transaction = FakeTransaction(self.docs)
        self.transactions.append(transaction)
        return transaction

@pytest.fixture(autouse=True)
def run_transactions_once(monkeypatch):
    """Call transaction bodies directly instead of through the retrying wrapper"""
    monkeypatch.setattr(repositories, "firestore", SimpleNamespace(transactional=lambda fn: fn))

@pytest.fixture
def fs():
    return FakeFirestore({
        ("menu_courses", "c1"): {"event_id": "e1", "name": "Soup", "is_served": False},
        ("events", "e1"): {"title": "Dinner", "status": "upcoming", "is_live": False},
    })

def test_mark_course_served_reads_and_writes_in_one_transaction(fs):
    repo = FirestoreRepository(fs)

    assert repo.mark_course_served("c1") is True

    transaction = fs.transactions[0]
    assert transaction.reads == [("menu_courses", "c1")]
    assert transaction.updates == [(("menu_courses", "c1"), {"is_served": True})]

def test_mark_course_served_twice_changes_once(fs):
    repo = FirestoreRepository(fs)
    repo.mark_course_served("c1")

    assert repo.mark_course_served("c1") is False
    assert fs.transactions[1].updates == []

def test_mark_missing_course(fs):
    assert FirestoreRepository(fs).mark_course_served("missing") is False

def test_status_write_applies_when_status_matches(fs):
    repo = FirestoreRepository(fs)

    changed = repo.update_event_status("e1", "upcoming", {"status": "active", "is_live": True})

    assert changed is True
    assert fs.docs[("events", "e1")]["status"] == "active"
    assert fs.transactions[0].reads == [("events", "e1")]

def test_status_write_skipped_when_status_moved(fs):
    fs.docs[("events", "e1")]["status"] = "cancelled"
    repo = FirestoreRepository(fs)

    changed = repo.update_event_status("e1", "upcoming", {"status": "active", "is_live": True})

    assert changed is False
    assert fs.docs[("events", "e1")] == {"title": "Dinner", "status": "cancelled", "is_live": False}

def test_status_write_on_missing_event(fs):
    assert FirestoreRepository(fs).update_event_status("gone", "upcoming", {"status": "active"}) is False

def test_transaction_errors_are_converted(fs, monkeypatch):
    def unavailable():
        raise google_exceptions.ServiceUnavailable("backend down")

    monkeypatch.setattr(fs, "transaction", unavailable)

    with pytest.raises(BackendUnavailable) as excinfo:
        FirestoreRepository(fs).mark_course_served("c1")
    assert excinfo.value.step == "mark_course_served"
