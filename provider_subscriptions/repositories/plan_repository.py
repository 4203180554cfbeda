"""Plan repository - loads and provides access to the subscription plan catalogue.

Loads from config/marketplace.yaml and provides lookup methods.
"""

from typing import Dict, List, Optional

from provider_subscriptions.config import Config, get_config
from provider_subscriptions.errors import NotFoundError
from provider_subscriptions.models import SubscriptionKind, SubscriptionPlan


class PlanNotFoundError(NotFoundError):
    """Raised when a plan is not found in the catalogue."""

    error_code = "plan_not_found"


class PlanRepository:
    """Repository for subscription plan definitions.

    Read-only after loading, so no locking is needed.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize plan repository.

        Args:
            config: Configuration instance. If not provided, uses global config.
        """
        self._config = config if config is not None else get_config()
        self._plans_by_id: Dict[str, SubscriptionPlan] = {}
        self._load_plans()

    def _load_plans(self) -> None:
        self._plans_by_id = {plan.plan_id: plan for plan in self._config.plans}

    def get_by_id(self, plan_id: str) -> SubscriptionPlan:
        """Get plan by id.

        Args:
            plan_id: Plan identifier (e.g., "monthly-standard")

        Returns:
            SubscriptionPlan

        Raises:
            PlanNotFoundError: If plan id not found
        """
        plan = self._plans_by_id.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(
                f"Plan not found: {plan_id}. "
                f"Available plans: {list(self._plans_by_id.keys())}"
            )
        return plan

    def find_by_id(self, plan_id: str) -> Optional[SubscriptionPlan]:
        return self._plans_by_id.get(plan_id)

    def get_active_plans(self, kind: Optional[SubscriptionKind] = None) -> List[SubscriptionPlan]:
        """Get plans open for subscription, cheapest first.

        Args:
            kind: Only return plans of this kind

        Returns:
            Active SubscriptionPlan objects sorted by price
        """
        plans = [
            p
            for p in self._plans_by_id.values()
            if p.active and (kind is None or p.kind == kind)
        ]
        return sorted(plans, key=lambda p: p.price)

    def get_all_plans(self) -> List[SubscriptionPlan]:
        return list(self._plans_by_id.values())

    def exists(self, plan_id: str) -> bool:
        return plan_id in self._plans_by_id

    def reload(self) -> None:
        """Reload plans from configuration."""
        self._config.reload()
        self._load_plans()

    def __len__(self) -> int:
        return len(self._plans_by_id)

    def __contains__(self, plan_id: str) -> bool:
        return self.exists(plan_id)

    def __repr__(self) -> str:
        return f"PlanRepository(plans={len(self)})"

