"""Unit tests for the persisted client state."""

from pathlib import Path

import pytest

from restaurant_dashboard.models.admin_models import RestaurantInfo, TableQrCode
from restaurant_dashboard.repositories.local_store import (
    QR_CODES_KEY,
    QR_TABLE_COUNT_KEY,
    RESTAURANT_INFO_KEY,
    ClientStateRepository,
    InMemoryStore,
    JsonFileStore,
)


@pytest.mark.unit
class TestJsonFileStore:
    """Test suite for JsonFileStore."""

    def test_round_trip_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "client.json"
        JsonFileStore(path).set("language", "de")

        assert JsonFileStore(path).get("language") == "de"

    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path / "absent.json")

        assert store.get("language") is None
        assert store.remove("language") is True

    def test_corrupt_file_reads_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "client.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(path)

        assert store.get("language") is None
        assert store.set("language", "ar") is True
        assert store.get("language") == "ar"

    def test_unserializable_value_is_rejected(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path / "client.json")

        assert store.set("bad", object()) is False

    def test_remove(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path / "client.json")
        store.set("a", 1)
        store.set("b", 2)

        assert store.remove("a") is True
        assert store.get("a") is None
        assert store.get("b") == 2


@pytest.mark.unit
class TestClientStateRepository:
    """Test suite for ClientStateRepository."""

    def test_credentials(self, repository: ClientStateRepository) -> None:
        repository.save_auth_token("abc")
        repository.save_user({"email": "owner@example.com"})

        assert repository.get_auth_token() == "abc"
        assert repository.get_user() == {"email": "owner@example.com"}

        repository.clear_credentials()
        assert repository.get_auth_token() is None
        assert repository.get_user() is None

    def test_restaurant_info(self, repository: ClientStateRepository) -> None:
        assert repository.get_restaurant_info() is None

        repository.save_restaurant_info(RestaurantInfo(name="Cedar House", phone="+49 30 1234"))

        assert repository.get_restaurant_info() == RestaurantInfo(name="Cedar House", phone="+49 30 1234")

    def test_invalid_restaurant_info_is_discarded(self) -> None:
        repository = ClientStateRepository(InMemoryStore({RESTAURANT_INFO_KEY: {"name": ["not", "text"]}}))
        assert repository.get_restaurant_info() is None

    def test_qr_codes_skip_invalid_entries(self) -> None:
        valid = {"table": 1, "value": "https://x/display-screen?table=1", "image": "data:image/png;base64,AA=="}
        repository = ClientStateRepository(InMemoryStore({QR_CODES_KEY: [valid, {"table": 0}]}))

        assert repository.get_qr_codes() == [TableQrCode(**valid)]

    @pytest.mark.parametrize("stored", [0, -1, "3", True, None])
    def test_invalid_table_count(self, stored: object) -> None:
        repository = ClientStateRepository(InMemoryStore({QR_TABLE_COUNT_KEY: stored}))
        assert repository.get_qr_table_count() is None

    def test_language(self, repository: ClientStateRepository) -> None:
        assert repository.get_language() is None
        repository.save_language("ar")
        assert repository.get_language() == "ar"
