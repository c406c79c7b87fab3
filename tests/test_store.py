"""
Tests for the document stores and persistence gateways
"""
from datetime import datetime, timedelta, timezone

import mongomock
import pytest

from construct_api.core.access import AccessRegistry
from construct_api.core.registration import validate_registration
from construct_api.errors import DuplicateRegistrationError, StorageError
from construct_api.models import RawCode, StorageSettings
from construct_api.services.store import (
    DuplicateDocumentError, LocalJsonStore, MongoStore, open_store,
)
from construct_api.services.team_registry import (
    ACCESS_KEYS, REGISTRATIONS, AccessKeyGateway, RegistrationGateway, clamp_limit,
)


class StepClock:
    """Each call returns a time one minute after the previous one"""

    def __init__(self):
        self.current = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(minutes=1)
        return self.current


def _record(payload, email="alex.lead@example.edu", name="Testers United"):
    body = payload(teamName=name)
    body["lead"]["email"] = email
    return validate_registration(body).record


def test_insert_and_find(store):
    doc_id = store.insert("things", {"lead": {"email": "a@b.co"}, "n": 1})
    assert doc_id.startswith("local-")
    found = store.find_one("things", "lead.email", "a@b.co")
    assert found["n"] == 1
    assert found["id"] == doc_id
    assert store.find_one("things", "lead.email", "x@y.co") is None


def test_unique_field_enforced(store):
    store.insert("things", {"lead": {"email": "a@b.co"}}, unique_field="lead.email")
    with pytest.raises(DuplicateDocumentError):
        store.insert("things", {"lead": {"email": "a@b.co"}}, unique_field="lead.email")
    assert len(store.list("things")) == 1


def test_put_replaces_by_id(store):
    store.put("keys", "a@b.co", {"hash": "1"})
    store.put("keys", "a@b.co", {"hash": "2"})
    assert store.get("keys", "a@b.co")["hash"] == "2"
    assert len(store.list("keys", order_by="id")) == 1


def test_unreadable_file_raises_storage_error(store):
    (store.data_dir / "broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        store.list("broken")


def test_save_stamps_server_time(store, payload):
    clock = StepClock()
    gateway = RegistrationGateway(store, clock=clock)
    saved = gateway.save(_record(payload))
    assert saved.id
    assert saved.submitted_at == clock.current


def test_duplicate_lead_email_rejected(store, payload):
    """Second registration with the same lead email fails, store keeps one"""
    gateway = RegistrationGateway(store)
    gateway.save(_record(payload))
    with pytest.raises(DuplicateRegistrationError) as exc:
        gateway.save(_record(payload, name="Another Team"))
    assert exc.value.status_code == 409
    assert exc.value.email == "alex.lead@example.edu"
    assert len(store.list(REGISTRATIONS)) == 1


def test_list_newest_first(store, payload):
    gateway = RegistrationGateway(store, clock=StepClock())
    for i in range(3):
        gateway.save(_record(payload, email=f"lead{i}@example.edu", name=f"Team {i}"))
    names = [r.team_name for r in gateway.list()]
    assert names == ["Team 2", "Team 1", "Team 0"]
    assert [r.team_name for r in gateway.list(limit="2")] == ["Team 2", "Team 1"]


def test_find_by_lead_email_normalizes(store, payload):
    gateway = RegistrationGateway(store)
    gateway.save(_record(payload))
    found = gateway.find_by_lead_email("  ALEX.Lead@Example.edu ")
    assert found is not None
    assert found.team_name == "Testers United"
    assert gateway.find_by_lead_email("") is None


def test_clamp_limit():
    assert clamp_limit(None, 500) == 100
    assert clamp_limit("abc", 500) == 100
    assert clamp_limit("0", 500) == 100
    assert clamp_limit(-3, 500) == 100
    assert clamp_limit("25", 500) == 25
    assert clamp_limit("10000", 500) == 500


def test_open_store_local(tmp_path):
    store = open_store(StorageSettings(backend="local", data_dir=str(tmp_path)))
    assert isinstance(store, LocalJsonStore)


def test_open_store_auto_without_url_uses_local(tmp_path):
    store = open_store(StorageSettings(backend="auto", data_dir=str(tmp_path)))
    assert store.name == "local"


def test_open_store_mongo_requires_url(tmp_path):
    with pytest.raises(StorageError):
        open_store(StorageSettings(backend="mongo", data_dir=str(tmp_path)))


def test_open_store_auto_falls_back_on_bad_mongo_url(tmp_path):
    store = open_store(StorageSettings(backend="auto", mongo_url="mongodb://", data_dir=str(tmp_path)))
    assert isinstance(store, LocalJsonStore)


def test_open_store_mongo_bad_url_raises_storage_error(tmp_path):
    with pytest.raises(StorageError):
        open_store(StorageSettings(backend="mongo", mongo_url="mongodb://", data_dir=str(tmp_path)))


def test_failed_write_leaves_no_temp_file(store, monkeypatch):
    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("construct_api.services.store.os.replace", broken_replace)
    with pytest.raises(StorageError):
        store.insert("things", {"n": 1})
    assert list(store.data_dir.glob("*.tmp")) == []


# ==================== MONGODB ====================

@pytest.fixture
def mongo_store():
    return MongoStore("mongodb://localhost", "construct-test", client=mongomock.MongoClient())


def test_mongo_insert_maps_object_id(mongo_store):
    doc = {"lead": {"email": "a@b.co"}, "n": 1}
    doc_id = mongo_store.insert("things", doc)
    found = mongo_store.find_one("things", "lead.email", "a@b.co")
    assert found["id"] == doc_id
    assert "_id" not in found
    assert "_id" not in doc


def test_mongo_unique_index(mongo_store):
    mongo_store.insert("things", {"lead": {"email": "a@b.co"}}, unique_field="lead.email")
    with pytest.raises(DuplicateDocumentError) as exc:
        mongo_store.insert("things", {"lead": {"email": "a@b.co"}}, unique_field="lead.email")
    assert exc.value.status_code == 409
    assert exc.value.value == "a@b.co"
    assert len(mongo_store.list("things")) == 1


def test_mongo_duplicate_registration(mongo_store, payload):
    """Lead-email uniqueness holds on the database backend too"""
    gateway = RegistrationGateway(mongo_store)
    gateway.save(_record(payload))
    with pytest.raises(DuplicateRegistrationError):
        gateway.save(_record(payload, name="Another Team"))
    assert len(gateway.list()) == 1


def test_mongo_list_newest_first(mongo_store, payload):
    gateway = RegistrationGateway(mongo_store, clock=StepClock())
    for i in range(3):
        gateway.save(_record(payload, email=f"lead{i}@example.edu", name=f"Team {i}"))
    assert [r.team_name for r in gateway.list()] == ["Team 2", "Team 1", "Team 0"]
    assert [r.team_name for r in gateway.list(limit=1)] == ["Team 2"]
    assert gateway.find_by_lead_email("LEAD1@example.edu").team_name == "Team 1"


def test_mongo_put_upserts(mongo_store):
    mongo_store.put("keys", "a@b.co", {"hash": "1"})
    mongo_store.put("keys", "a@b.co", {"hash": "2", "id": "ignored"})
    entry = mongo_store.get("keys", "a@b.co")
    assert entry == {"id": "a@b.co", "hash": "2"}


def test_mongo_access_codes(mongo_store, payload):
    registrations = RegistrationGateway(mongo_store)
    registry = AccessRegistry(registrations, AccessKeyGateway(mongo_store))
    team = registrations.save(_record(payload))
    registry.issue_access_code(team, code="FIRST-CODE")
    registry.issue_access_code(team, code="SECOND-CODE")

    assert len(mongo_store.list(ACCESS_KEYS, order_by="generatedAt")) == 1
    assert registry.validate_access("alex.lead@example.edu", RawCode(value="SECOND-CODE")).ok
    assert not registry.validate_access("alex.lead@example.edu", RawCode(value="FIRST-CODE")).ok
