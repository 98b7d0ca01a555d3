"""
Subscription Revenue Pipeline

Active driver/shipper subscriptions and the monthly recurring revenue
(MRR) they bring in, summed per role. No infrastructure dependencies -
pure data processing.
"""

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from loadrush_analytics.pipelines.base import Pipeline
from loadrush_analytics.pipelines.formatting import format_currency
from loadrush_analytics.store.records import SubscriptionRecord

ROLES = ("driver", "shipper")


@dataclass(frozen=True)
class SubscriptionAnalytics:
    driver_count: int = 0
    shipper_count: int = 0
    driver_mrr: float = 0.0
    shipper_mrr: float = 0.0
    total_count: int = 0
    total_mrr: float = 0.0
    formatted_driver_mrr: str = "$0.00"
    formatted_shipper_mrr: str = "$0.00"
    formatted_total_mrr: str = "$0.00"
    is_loading: bool = True
    error: Optional[str] = None

    def with_error(self, message: str) -> "SubscriptionAnalytics":
        return replace(self, error=message, is_loading=False)


class SubscriptionAggregator(Pipeline):
    """
    Subscriptions with any other role are ignored.

    Example:
        aggregator = SubscriptionAggregator()
        subs = aggregator.process(active_subscriptions)
        print(subs.driver_count, subs.formatted_total_mrr)
    """

    @property
    def name(self) -> str:
        return "subscriptions"

    def process(self, subscriptions: Iterable[SubscriptionRecord]) -> SubscriptionAnalytics:
        counts = dict.fromkeys(ROLES, 0)
        mrr = dict.fromkeys(ROLES, 0.0)

        for sub in subscriptions:
            if not sub.is_active or sub.role not in counts:
                continue
            counts[sub.role] += 1
            mrr[sub.role] += sub.price

        total_mrr = mrr["driver"] + mrr["shipper"]
        return SubscriptionAnalytics(
            driver_count=counts["driver"],
            shipper_count=counts["shipper"],
            driver_mrr=mrr["driver"],
            shipper_mrr=mrr["shipper"],
            total_count=counts["driver"] + counts["shipper"],
            total_mrr=total_mrr,
            formatted_driver_mrr=format_currency(mrr["driver"]),
            formatted_shipper_mrr=format_currency(mrr["shipper"]),
            formatted_total_mrr=format_currency(total_mrr),
            is_loading=False,
            error=None,
        )
