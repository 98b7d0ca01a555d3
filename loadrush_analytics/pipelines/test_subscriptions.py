import pytest

from loadrush_analytics.pipelines.subscriptions import SubscriptionAggregator, SubscriptionAnalytics
from loadrush_analytics.store.records import SubscriptionRecord


def sub(doc_id, role, price, status="active"):
    return SubscriptionRecord.from_dict(doc_id, {"role": role, "status": status, "price": price})


class TestSubscriptionAggregator:
    def test_counts_and_mrr_per_role(self):
        subs = [
            sub("d1", "driver", 49.99),
            sub("d2", "Driver", 49.99),
            sub("s1", "shipper", 199),
        ]
        result = SubscriptionAggregator().process(subs)

        assert result.driver_count == 2
        assert result.shipper_count == 1
        assert result.total_count == 3
        assert result.driver_mrr == pytest.approx(99.98)
        assert result.shipper_mrr == 199
        assert result.total_mrr == pytest.approx(298.98)
        assert result.formatted_driver_mrr == "$99.98"
        assert result.formatted_shipper_mrr == "$199.00"
        assert result.formatted_total_mrr == "$298.98"
        assert result.is_loading is False

    def test_ignores_inactive_and_other_roles(self):
        subs = [sub("d1", "driver", 50, status="cancelled"), sub("a1", "admin", 10), sub("s1", "shipper", 100)]
        result = SubscriptionAggregator().process(subs)
        assert result.driver_count == 0
        assert result.shipper_count == 1
        assert result.total_mrr == 100

    def test_missing_or_bad_price_counts_as_zero(self):
        subs = [sub("d1", "driver", None), sub("d2", "driver", "NaN")]
        result = SubscriptionAggregator().process(subs)
        assert result.driver_count == 2
        assert result.driver_mrr == 0
        assert result.formatted_driver_mrr == "$0.00"

    def test_empty(self):
        result = SubscriptionAggregator().process([])
        assert result.total_count == 0
        assert result.formatted_total_mrr == "$0.00"


class TestSubscriptionAnalytics:
    def test_initial_state(self):
        assert SubscriptionAnalytics().is_loading

    def test_with_error_keeps_figures(self):
        failed = SubscriptionAggregator().process([sub("s1", "shipper", 100)]).with_error("denied")
        assert failed.shipper_mrr == 100
        assert failed.error == "denied"
        assert failed.is_loading is False
