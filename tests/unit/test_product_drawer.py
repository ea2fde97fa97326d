"""Unit tests for the product create/edit drawer."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from restaurant_dashboard.models.catalog_models import Product
from restaurant_dashboard.services.api_errors import ApiError
from restaurant_dashboard.services.catalog_service import ProductService
from restaurant_dashboard.state.product_drawer import (
    ALLERGENS_REQUIRED_MESSAGE,
    PRICE_INVALID_MESSAGE,
    DrawerState,
    ProductDraft,
    ProductEditDrawer,
    validate_draft,
)

OBJECT_ID = "64b7f0c2a1b2c3d4e5f60718"


@pytest.fixture
def product_service() -> MagicMock:
    service = MagicMock(spec=ProductService)
    service.client = MagicMock()
    service.client.token = "token"
    service.get_product = AsyncMock()
    service.create_product = AsyncMock(return_value={"success": True})
    service.update_product = AsyncMock(return_value={"success": True})
    return service


def _listed_product() -> Product:
    return Product(
        id=OBJECT_ID,
        name="Wrap",
        category_id="c1",
        price=Decimal("7.5"),
        ingredients="sesame",
        is_available=True,
    )


@pytest.mark.unit
class TestValidateDraft:
    def test_valid(self) -> None:
        draft = ProductDraft(name="Wrap", category_id="c1", price="7.5", ingredients="sesame")
        assert validate_draft(draft) == {}

    @pytest.mark.parametrize("price", ["-1", "abc", "", "inf"])
    def test_invalid_price(self, price: str) -> None:
        draft = ProductDraft(name="Wrap", category_id="c1", price=price, ingredients="sesame")
        assert validate_draft(draft) == {"price": PRICE_INVALID_MESSAGE}

    def test_blank_allergen_list_is_rejected(self) -> None:
        draft = ProductDraft(name="Wrap", category_id="c1", price="0", ingredients=" , ,")
        assert validate_draft(draft) == {"ingredients": ALLERGENS_REQUIRED_MESSAGE}


@pytest.mark.unit
class TestProductEditDrawer:
    """Test suite for ProductEditDrawer."""

    def test_update_requires_open_drawer(self, product_service: MagicMock) -> None:
        drawer = ProductEditDrawer(product_service, "r1", fetch_on_edit=False)
        with pytest.raises(RuntimeError):
            drawer.update(name="x")

    def test_fetch_flag_defaults_to_environment(
        self, product_service: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FETCH_PRODUCT_ON_EDIT", "true")
        assert ProductEditDrawer(product_service, "r1").fetch_on_edit is True
        monkeypatch.delenv("FETCH_PRODUCT_ON_EDIT")
        assert ProductEditDrawer(product_service, "r1").fetch_on_edit is False

    @pytest.mark.asyncio
    async def test_create_flow(self, product_service: MagicMock) -> None:
        drawer = ProductEditDrawer(product_service, "r1", fetch_on_edit=False)

        drawer.open_for_create("c1")
        drawer.update(name="Soup", price="4.20", ingredients="celery, ")
        assert drawer.state is DrawerState.OPEN_FOR_CREATE

        assert await drawer.submit() is True

        product, restaurant_id = product_service.create_product.await_args.args
        assert product.name == "Soup"
        assert product.category_id == "c1"
        assert product.price == Decimal("4.20")
        assert product.ingredients == "celery"
        assert restaurant_id == "r1"
        assert drawer.state is DrawerState.CLOSED
        assert drawer.draft == ProductDraft()

    @pytest.mark.asyncio
    async def test_local_validation_prioritizes_allergen_message(self, product_service: MagicMock) -> None:
        drawer = ProductEditDrawer(product_service, "r1", fetch_on_edit=False)
        drawer.open_for_create()

        assert await drawer.submit() is False

        assert drawer.form_error == ALLERGENS_REQUIRED_MESSAGE
        assert set(drawer.field_errors) == {"name", "category_id", "ingredients"}
        assert drawer.state is DrawerState.OPEN_FOR_CREATE
        product_service.create_product.assert_not_called()

    @pytest.mark.asyncio
    async def test_edit_refetches_when_enabled(self, product_service: MagicMock) -> None:
        product_service.get_product.return_value = _listed_product().model_copy(update={"name": "Fresh Wrap"})
        drawer = ProductEditDrawer(product_service, "r1", fetch_on_edit=True)

        await drawer.open_for_edit(_listed_product())

        product_service.get_product.assert_awaited_once()
        assert drawer.draft.name == "Fresh Wrap"
        assert drawer.state is DrawerState.OPEN_FOR_EDIT

    @pytest.mark.asyncio
    async def test_edit_skips_fetch_for_malformed_id(self, product_service: MagicMock) -> None:
        drawer = ProductEditDrawer(product_service, "r1", fetch_on_edit=True)

        await drawer.open_for_edit(_listed_product().model_copy(update={"id": "not-an-object-id"}))

        product_service.get_product.assert_not_called()
        assert drawer.draft.name == "Wrap"

    @pytest.mark.asyncio
    async def test_edit_falls_back_to_listed_item_on_fetch_failure(self, product_service: MagicMock) -> None:
        product_service.get_product.side_effect = ApiError(404)
        drawer = ProductEditDrawer(product_service, "r1", fetch_on_edit=True)

        await drawer.open_for_edit(_listed_product())

        assert drawer.draft.name == "Wrap"
        assert drawer.form_error == "Requested resource was not found."
        assert drawer.state is DrawerState.OPEN_FOR_EDIT

    @pytest.mark.asyncio
    async def test_failed_update_returns_to_edit_with_buffer(self, product_service: MagicMock) -> None:
        product_service.update_product.side_effect = ApiError(
            400, {"message": "Invalid product", "errors": [{"field": "price", "message": "Too high"}]}
        )
        drawer = ProductEditDrawer(product_service, "r1", fetch_on_edit=False)
        await drawer.open_for_edit(_listed_product())
        drawer.update(price="999")

        assert await drawer.submit() is False

        assert drawer.state is DrawerState.OPEN_FOR_EDIT
        assert drawer.draft.price == "999"
        assert drawer.form_error == "Invalid product"
        assert drawer.field_errors == {"price": "Too high"}
        updated, _ = product_service.update_product.await_args.args
        assert updated.id == OBJECT_ID
