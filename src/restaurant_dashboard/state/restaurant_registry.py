"""Super-admin restaurant registry, held in memory."""

import logging
from collections import Counter
from collections.abc import Iterable

from restaurant_dashboard.models.admin_models import RegisteredRestaurant, RestaurantStatus

logger = logging.getLogger(__name__)


class RestaurantRegistry:
    """List of registered restaurants with search and confirmed deletion."""

    def __init__(self, restaurants: Iterable[RegisteredRestaurant] = ()) -> None:
        self.restaurants: list[RegisteredRestaurant] = list(restaurants)
        self.search_term = ""
        self.pending_delete: RegisteredRestaurant | None = None

    def filtered(self) -> list[RegisteredRestaurant]:
        """Restaurants whose name, owner or city contains the search term, ignoring case."""
        term = self.search_term.lower()
        return [
            restaurant
            for restaurant in self.restaurants
            if term in restaurant.name.lower() or term in restaurant.owner.lower() or term in restaurant.city.lower()
        ]

    def status_counts(self) -> dict[RestaurantStatus, int]:
        counts = Counter(restaurant.status for restaurant in self.restaurants)
        return {status: counts.get(status, 0) for status in RestaurantStatus}

    def request_delete(self, restaurant: RegisteredRestaurant) -> None:
        self.pending_delete = restaurant

    def cancel_delete(self) -> None:
        self.pending_delete = None

    def confirm_delete(self) -> bool:
        if self.pending_delete is None:
            return False
        removed = self.pending_delete
        self.restaurants = [restaurant for restaurant in self.restaurants if restaurant.id != removed.id]
        self.pending_delete = None
        logger.info(f"Removed restaurant {removed.id} ({removed.name}) from the registry")
        return True
