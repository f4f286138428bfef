"""Shared pytest fixtures: in-memory database, stores, classifier, API client."""
import os

# Must be set before config/database are imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEFAULT_STATEMENT_YEAR", "2025")

import fitz  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import models  # noqa: E402,F401
from database import Base, SessionLocal, engine, get_db  # noqa: E402
from services.mapping_store import MappingStore  # noqa: E402
from services.merchant_classifier import MerchantClassifier, get_classifier  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_pdf(pages):
    """Build PDF bytes with one text line per entry, one list per page."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        y = 72
        for line in lines:
            page.insert_text((72, y), line, fontsize=10)
            y += 16
    content = doc.tobytes()
    doc.close()
    return content


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mapping_store(db_session):
    return MappingStore(SessionLocal)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def classifier(mapping_store, clock):
    return MerchantClassifier(mapping_store, ttl_seconds=300, clock=clock)


@pytest.fixture
def seeded_classifier(mapping_store, clock):
    mapping_store.seed_defaults()
    return MerchantClassifier(mapping_store, ttl_seconds=300, clock=clock)


@pytest.fixture
def client(db_session, seeded_classifier):
    from main import app

    def _get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_classifier] = lambda: seeded_classifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
