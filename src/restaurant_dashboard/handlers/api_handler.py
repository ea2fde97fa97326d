"""FastAPI application serving the display screen and table QR codes."""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from restaurant_dashboard.models.admin_models import TableQrCode
from restaurant_dashboard.services.display_screen_service import (
    ALL_CATEGORIES,
    DisplayScreenCoordinator,
    DisplayView,
)
from restaurant_dashboard.services.qr_service import MAX_TABLE_COUNT, QrCodeBook

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class LanguageRequest(BaseModel):
    language: str = Field(..., min_length=2, description="Display language code")


class RefreshResponse(BaseModel):
    """Outcome of a refresh of every display collection."""

    success: bool
    results: list[dict[str, object]]


class QrCodesRequest(BaseModel):
    count: int = Field(
        default=1, le=MAX_TABLE_COUNT, description="Number of tables; values below 1 yield one table"
    )


class QrCodesResponse(BaseModel):
    table_count: int
    codes: list[TableQrCode]


def create_app(
    coordinator: DisplayScreenCoordinator,
    qr_book: QrCodeBook,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[None]] | None = None,
) -> FastAPI:
    """Create and configure the kiosk application.

    Args:
        coordinator: Polling coordinator of the display screen
        qr_book: Current batch of table QR codes
        lifespan: Optional lifespan context, used to start and stop polling

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Dashboard Kiosk",
        description="Display-screen view and table QR codes for a restaurant",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.coordinator = coordinator
    app.state.qr_book = qr_book

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        return HealthResponse(status="healthy")

    @app.get("/display", response_model=DisplayView, tags=["Display"])
    async def get_display(category: str = ALL_CATEGORIES) -> DisplayView:
        """Current display-screen view, optionally narrowed to one category."""
        view: DisplayView = app.state.coordinator.view(category)
        return view

    @app.post("/display/language", response_model=RefreshResponse, tags=["Display"])
    async def set_language(request: LanguageRequest) -> RefreshResponse:
        """Switch the display language and refetch the collections."""
        logger.info(f"Display language change requested: {request.language}")
        results = await app.state.coordinator.set_language(request.language)
        return _refresh_response(results)

    @app.post("/display/reconnect", response_model=RefreshResponse, tags=["Display"])
    async def reconnect() -> RefreshResponse:
        """Signal that the network came back; every collection is refetched."""
        results = await app.state.coordinator.on_reconnect()
        return _refresh_response(results)

    @app.get("/qr-codes", response_model=QrCodesResponse, tags=["QR Codes"])
    async def get_qr_codes() -> QrCodesResponse:
        book: QrCodeBook = app.state.qr_book
        return QrCodesResponse(table_count=book.table_count, codes=book.codes)

    @app.post("/qr-codes", response_model=QrCodesResponse, tags=["QR Codes"])
    async def generate_qr_codes(request: QrCodesRequest) -> QrCodesResponse:
        """Replace the QR batch with codes for ``count`` tables.

        Encoding and persisting run in the threadpool so polling keeps its pace.
        """
        book: QrCodeBook = app.state.qr_book
        codes = await run_in_threadpool(book.generate, request.count)
        return QrCodesResponse(table_count=book.table_count, codes=codes)

    @app.delete("/qr-codes", response_model=QrCodesResponse, tags=["QR Codes"])
    async def clear_qr_codes() -> QrCodesResponse:
        book: QrCodeBook = app.state.qr_book
        book.clear()
        return QrCodesResponse(table_count=book.table_count, codes=[])

    return app


def _refresh_response(results: list) -> RefreshResponse:
    return RefreshResponse(
        success=all(result.success for result in results),
        results=[
            {
                "collection": result.collection,
                "success": result.success,
                "item_count": result.item_count,
                "error_message": result.error_message,
            }
            for result in results
        ],
    )
