"""
Shared test fixtures: SQLite database, test client, fixed clock, fresh PDF cache.
"""

import os
import random
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Configure before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["PDF_CACHE_BACKEND"] = "memory"

from quotation.catalog import default_catalog
from quotation.database import Base
from quotation.dependencies import get_company_info, get_document_cache
from quotation.document_cache import DocumentCache, InMemoryCacheStorage
from quotation.main import app
from quotation.pdf_generator import suggested_filename
from quotation.pricing_engine import PricingEngine
from quotation.quote_assembler import QuoteAssembler


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def document_cache():
    """Fresh in-memory PDF cache per test, also used by the API."""
    cache = DocumentCache(InMemoryCacheStorage(), filename_for=suggested_filename)
    app.dependency_overrides[get_document_cache] = lambda: cache
    yield cache
    app.dependency_overrides.pop(get_document_cache, None)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def pricing_engine(catalog):
    return PricingEngine(catalog)


@pytest.fixture
def assembler(catalog, clock):
    return QuoteAssembler(catalog, clock=clock, rng=random.Random(42))


@pytest.fixture
def company():
    return get_company_info()
