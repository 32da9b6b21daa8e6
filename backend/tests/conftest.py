"""Pytest configuration for backend tests."""
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from bookvault.database import Base, get_db
# Import the models module so the table is registered with Base.metadata
import bookvault.models  # noqa: F401
from bookvault.core.dependencies import get_catalog_client, get_identity_resolver
from bookvault.schemas.library import LibraryEntry
from bookvault.services.catalog_client import CatalogCall, CatalogDocument
from bookvault.services.identity_resolver import IdentityResolver
from bookvault.services.text_normalizer import title_token_key


class FakeCatalog:
    """
    In-memory stand-in for OpenLibraryClient.

    search() answers from `results` keyed by the exact query string and
    records every call, so tests can assert on network usage.
    """

    def __init__(
        self,
        results: Optional[Dict[str, List[CatalogDocument]]] = None,
        editions: Optional[Dict[str, Dict[str, Any]]] = None,
        works: Optional[Dict[str, Dict[str, Any]]] = None,
        identity_docs: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ):
        self.results = results or {}
        self.editions = editions or {}
        self.works = works or {}
        self.identity_docs = identity_docs or {}
        self.calls: List[tuple] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def cover_url(self, isbn: str) -> str:
        return f"https://covers.test/b/isbn/{isbn}-M.jpg"

    def search(self, query: str, limit: int, kind: str = "query", call_log: Optional[List[CatalogCall]] = None):
        self.calls.append(("search", query))
        docs = list(self.results.get(query, []))[:limit]
        if call_log is not None:
            call_log.append(CatalogCall(kind=kind, query=query, limit=limit, got=len(docs)))
        return docs

    def search_docs(self, query: str, limit: int = 6):
        self.calls.append(("search_docs", query))
        return list(self.identity_docs.get(query, []))[:limit]

    def fetch_by_identifier(self, isbn: str):
        self.calls.append(("isbn", isbn))
        return self.editions.get(isbn)

    def fetch_work(self, work_key: str):
        self.calls.append(("work", work_key))
        return self.works.get(work_key)


class FakeCrossReference:
    """Resolves by title token key; unknown titles give None."""

    def __init__(self, ids: Optional[Dict[str, str]] = None):
        self.ids = ids or {}
        self.calls: List[tuple] = []

    def resolve_by_title_author(self, title: str, authors: str) -> Optional[str]:
        self.calls.append((title, authors))
        return self.ids.get(title_token_key(title))


def make_doc(
    title: str,
    authors: str,
    isbn: Optional[str],
    subjects: Optional[List[str]] = None,
    work_key: Optional[str] = None,
    description: Optional[str] = None,
    languages: Optional[List[str]] = None,
) -> CatalogDocument:
    return CatalogDocument(
        title=title,
        authors=authors,
        identifier=isbn,
        subjects=subjects or [],
        work_key=work_key,
        description=description,
        languages=languages or [],
    )


def make_entry(title: str, authors: str, isbn: str = "", status: str = "read", rating=None, subjects=None, **kwargs) -> LibraryEntry:
    return LibraryEntry(
        title=title,
        authors=authors,
        isbn=isbn,
        status=status,
        rating=rating,
        subjects=subjects or [],
        **kwargs,
    )


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def resolver(fake_catalog: FakeCatalog) -> IdentityResolver:
    return IdentityResolver(fake_catalog)


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared across threads for one test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(engine, fake_catalog: FakeCatalog, resolver: IdentityResolver):
    """TestClient with the database and catalog swapped for test doubles."""
    from fastapi.testclient import TestClient
    from bookvault.main import app

    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog_client] = lambda: fake_catalog
    app.dependency_overrides[get_identity_resolver] = lambda: resolver
    yield TestClient(app)
    app.dependency_overrides.clear()
