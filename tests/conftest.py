import pathlib
import sys

import pytest

root = pathlib.Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from medicore import create_app
from medicore.extensions import close_store
from medicore.models import WEEKDAYS, Doctor, weekly_schedule
from medicore.services.seed import seed_defaults
from medicore.services.snapshots import MemoryByteStore, SnapshotPersister
from medicore.services.store import RecordStore

# 2024-06-10 is a Monday.
MONDAY = "2024-06-10"
TUESDAY = "2024-06-11"


@pytest.fixture
def byte_store():
    return MemoryByteStore()


@pytest.fixture
def store(byte_store):
    store = RecordStore(SnapshotPersister(byte_store), seed=seed_defaults).open()
    yield store
    store.close()


@pytest.fixture
def monday_doctor(store):
    """Doctor working Mondays 09:00-10:00 only."""
    doctor = Doctor(
        id="dm",
        name="Dr. Monday",
        specialty="General Practice",
        consultation_fee=500,
        email="monday@medicore.com",
        schedule=weekly_schedule(("Mon",), "09:00", "10:00"),
    )
    store.upsert("doctors", doctor.id, doctor)
    return doctor


@pytest.fixture
def everyday_doctor(store):
    doctor = Doctor(
        id="de",
        name="Dr. Everyday",
        specialty="General Practice",
        consultation_fee=300,
        schedule=weekly_schedule(WEEKDAYS, "09:00", "17:00"),
    )
    store.upsert("doctors", doctor.id, doctor)
    return doctor


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("MEDICORE_DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("MEDICORE_SECRET_KEY", "test-secret")
    monkeypatch.delenv("MEDICORE_SNAPSHOT_QUOTA_BYTES", raising=False)
    monkeypatch.delenv("MEDICORE_QUEUE_SCOPE", raising=False)
    app = create_app()
    app.config.update(TESTING=True)
    yield app
    close_store(app)


@pytest.fixture
def app_store(app):
    return app.extensions["store"]


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()
