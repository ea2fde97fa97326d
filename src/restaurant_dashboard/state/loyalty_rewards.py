"""In-memory loyalty reward book."""

import itertools
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date

from restaurant_dashboard.models.admin_models import LoyaltyCustomer, Reward, RewardHistoryEntry

logger = logging.getLogger(__name__)

POINTS_REQUIRED_MESSAGE = "Please fill in all required fields."
TITLE_REQUIRED_MESSAGE = "Please enter a reward title."
DATES_REQUIRED_MESSAGE = "Please select a start and end date."
START_IN_PAST_MESSAGE = "The start date cannot be in the past."
END_BEFORE_START_MESSAGE = "The end date must be after the start date."


@dataclass
class RewardForm:
    points: str = ""
    title: str = ""
    start_date: date | None = None
    end_date: date | None = None


def validate_reward_form(form: RewardForm, today: date) -> str | None:
    """Return the first problem with the form, or None if it is valid."""
    if not form.points.strip().isdigit() or int(form.points) <= 0:
        return POINTS_REQUIRED_MESSAGE
    if not form.title.strip():
        return TITLE_REQUIRED_MESSAGE
    if form.start_date is None or form.end_date is None:
        return DATES_REQUIRED_MESSAGE
    if form.start_date < today:
        return START_IN_PAST_MESSAGE
    if form.end_date <= form.start_date:
        return END_BEFORE_START_MESSAGE
    return None


class RewardBook:
    """Rewards, members and claim history kept in process memory.

    Nothing is persisted; all state is lost with the process.
    """

    def __init__(
        self,
        rewards: Iterable[Reward] = (),
        customers: Iterable[LoyaltyCustomer] = (),
        today: Callable[[], date] = date.today,
    ) -> None:
        self.rewards: list[Reward] = list(rewards)
        self.customers: list[LoyaltyCustomer] = list(customers)
        self.history: list[RewardHistoryEntry] = []
        self.today = today

        self.form = RewardForm()
        self.form_error: str | None = None
        self.editing_id: int | None = None
        self.pending_delete: int | None = None
        start = max((reward.id for reward in self.rewards), default=0) + 1
        self._ids = itertools.count(start)

    def find(self, reward_id: int) -> Reward | None:
        return next((reward for reward in self.rewards if reward.id == reward_id), None)

    def open_form(self, reward: Reward | None = None) -> None:
        """Start a new reward, or edit an existing one."""
        self.form_error = None
        if reward is None:
            self.form = RewardForm()
            self.editing_id = None
            return
        self.form = RewardForm(
            points=str(reward.points),
            title=reward.title,
            start_date=reward.start_date,
            end_date=reward.end_date,
        )
        self.editing_id = reward.id

    def save(self) -> Reward | None:
        """Validate the form and create or update the reward.

        Returns:
            The saved reward, or None with ``form_error`` set
        """
        self.form_error = validate_reward_form(self.form, self.today())
        if self.form_error is not None:
            return None

        points = int(self.form.points)
        fields = {
            "points": points,
            "title": self.form.title.strip(),
            "description": f"Reward for {points} points.",
            "start_date": self.form.start_date,
            "end_date": self.form.end_date,
        }

        existing = self.find(self.editing_id) if self.editing_id is not None else None
        if existing is not None:
            saved = existing.model_copy(update=fields)
            self.rewards = [saved if reward.id == existing.id else reward for reward in self.rewards]
        else:
            saved = Reward(id=next(self._ids), **fields)
            self.rewards.append(saved)

        self.form = RewardForm()
        self.editing_id = None
        return saved

    def toggle_active(self, reward_id: int) -> bool:
        reward = self.find(reward_id)
        if reward is None:
            return False
        self._replace(reward.model_copy(update={"active": not reward.active}))
        return True

    def request_delete(self, reward_id: int) -> None:
        self.pending_delete = reward_id

    def cancel_delete(self) -> None:
        self.pending_delete = None

    def confirm_delete(self) -> bool:
        if self.pending_delete is None:
            return False
        before = len(self.rewards)
        self.rewards = [reward for reward in self.rewards if reward.id != self.pending_delete]
        self.pending_delete = None
        return len(self.rewards) < before

    def claimable(self, customer: LoyaltyCustomer) -> list[Reward]:
        return [
            reward
            for reward in self.rewards
            if reward.active and not reward.claimed and customer.current_points >= reward.points
        ]

    def claim(self, reward_id: int, customer_id: int) -> RewardHistoryEntry | None:
        """Spend a customer's points on a reward.

        Returns:
            The history entry, or None if the reward or customer is unknown or
            the customer lacks the points
        """
        reward = self.find(reward_id)
        customer = next((c for c in self.customers if c.id == customer_id), None)
        if reward is None or customer is None or customer.current_points < reward.points:
            return None

        claimed_on = self.today()
        updated_customer = customer.model_copy(
            update={
                "current_points": customer.current_points - reward.points,
                "total_points_redeemed": customer.total_points_redeemed + reward.points,
            }
        )
        self.customers = [updated_customer if c.id == customer_id else c for c in self.customers]
        self._replace(reward.model_copy(update={"claimed": True, "claim_date": claimed_on}))

        entry = RewardHistoryEntry(
            id=len(self.history) + 1,
            reward_id=reward.id,
            reward_title=reward.title,
            customer_id=customer_id,
            points_used=reward.points,
            claim_date=claimed_on,
        )
        self.history.insert(0, entry)
        logger.info(f"Customer {customer_id} claimed reward {reward_id} for {reward.points} points")
        return entry

    def _replace(self, updated: Reward) -> None:
        self.rewards = [updated if reward.id == updated.id else reward for reward in self.rewards]
