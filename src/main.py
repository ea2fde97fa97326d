"""Main application entry point for the restaurant dashboard kiosk.

This module builds the client object graph from environment variables and
exposes the FastAPI application serving the display screen and QR codes.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from restaurant_dashboard.auth.session import AuthSession
from restaurant_dashboard.handlers.api_handler import create_app
from restaurant_dashboard.observability import configure_logging, setup_observability
from restaurant_dashboard.repositories.local_store import (
    ClientStateRepository,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
)
from restaurant_dashboard.services.catalog_service import CategoryService, ProductService
from restaurant_dashboard.services.dashboard_api_client import DashboardApiClient
from restaurant_dashboard.services.discount_service import DiscountService
from restaurant_dashboard.services.display_screen_service import DisplayScreenCoordinator
from restaurant_dashboard.services.offer_service import OfferService
from restaurant_dashboard.services.qr_service import QrCodeBook
from restaurant_dashboard.services.query_cache import QueryCache

logger = logging.getLogger(__name__)


def create_state_store() -> KeyValueStore:
    """Create the local state store.

    Returns:
        A JSON file store when DASHBOARD_STATE_FILE is set, otherwise an in-memory store
    """
    path = os.getenv("DASHBOARD_STATE_FILE")
    if path:
        logger.info(f"Persisting client state to {path}")
        return JsonFileStore(path)
    logger.warning("DASHBOARD_STATE_FILE not set - client state will not survive a restart")
    return InMemoryStore()


def create_application() -> FastAPI:
    """Create and configure the kiosk application with all dependencies.

    Returns:
        Configured FastAPI application instance

    Raises:
        ValueError: If no restaurant can be determined
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    logger.info("Initializing restaurant dashboard kiosk...")

    repository = ClientStateRepository(create_state_store())
    session = AuthSession(repository)

    base_url = os.getenv("DASHBOARD_API_BASE_URL", "http://localhost:3000")
    client = DashboardApiClient(base_url=base_url, token_provider=session.token_provider)
    logger.info(f"Dashboard API client configured - URL: {base_url}")

    restaurant_id = os.getenv("DASHBOARD_RESTAURANT_ID") or session.restaurant_id
    if not restaurant_id:
        raise ValueError("DASHBOARD_RESTAURANT_ID must be set when no logged-in user is stored")

    language = os.getenv("DASHBOARD_LANGUAGE") or repository.get_language() or "en"

    cache = QueryCache()
    coordinator = DisplayScreenCoordinator(
        client=client,
        products=ProductService(client, cache),
        categories=CategoryService(client, cache),
        offers=OfferService(client, cache),
        discounts=DiscountService(client, cache),
        repository=repository,
        restaurant_id=restaurant_id,
        language=language,
    )

    origin = os.getenv("DASHBOARD_PUBLIC_ORIGIN", "http://localhost:5173")
    qr_book = QrCodeBook(repository, origin)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await coordinator.start()
        logger.info(f"Display screen polling started for restaurant {restaurant_id}")
        try:
            yield
        finally:
            await coordinator.close()
            logger.info("Display screen polling stopped")

    app = create_app(coordinator=coordinator, qr_book=qr_book, lifespan=lifespan)
    setup_observability(app)

    logger.info("Restaurant dashboard kiosk initialized successfully")
    return app


# Create the application instance (only when not in test mode)
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    app = FastAPI()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting kiosk server on {host}:{port}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
