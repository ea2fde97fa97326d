"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Callable

import httpx
import pytest

from restaurant_dashboard.repositories.local_store import ClientStateRepository, InMemoryStore
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.query_cache import QueryCache

os.environ.setdefault("ENVIRONMENT", "test")

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def mock_restaurant_id() -> str:
    """Fixture providing a standard test restaurant ID."""
    return "64b7f0c2a1b2c3d4e5f60718"


@pytest.fixture
def make_api_client() -> Callable[..., DashboardApiClient]:
    """Fixture building a DashboardApiClient answered by an in-process handler."""

    def factory(handler: Handler, token: str | None = "test-token") -> DashboardApiClient:
        return DashboardApiClient(
            base_url="http://api.test",
            token_provider=lambda: token,
            transport=httpx.MockTransport(handler),
        )

    return factory


@pytest.fixture
def query_cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def repository() -> ClientStateRepository:
    """Fixture providing a repository over an in-memory store."""
    return ClientStateRepository(InMemoryStore())


@pytest.fixture
def legacy_product_record() -> dict:
    """Fixture providing a product in the flat, string-named schema."""
    return {
        "_id": "p1",
        "name": "Falafel Wrap",
        "description": "Chickpea falafel",
        "price": 7.5,
        "categoryId": "c1",
        "isAvailable": True,
        "ingredients": ["sesame", "gluten"],
        "images": ["https://img.test/falafel.jpg"],
        "isNewItem": True,
    }


@pytest.fixture
def nested_product_record() -> dict:
    """Fixture providing a product in the localized, nested-availability schema."""
    return {
        "_id": "p2",
        "name": {"en": "Hummus", "ar": "حمص", "de": "Hummus"},
        "description": {"en": "", "ar": "طبق", "de": "Kichererbsen"},
        "price": "4.20",
        "categoryId": {"_id": "c2", "name": {"en": "Starters"}},
        "availability": {"isAvailable": True},
        "allergens": ["sesame"],
    }


@pytest.fixture
def mock_categories() -> list[dict]:
    """Fixture providing sample categories for testing."""
    return [
        {"_id": "c1", "name": "Wraps", "isActive": True},
        {"_id": "c2", "name": {"en": "Starters", "de": "Vorspeisen"}},
    ]
