"""
Analytics Pipelines

Pure data processing logic. No knowledge of the store, Kafka or metrics.
Each pipeline takes records in, returns an immutable output.
"""

from loadrush_analytics.pipelines.base import Pipeline
from loadrush_analytics.pipelines.revenue import RevenueAggregator, PlatformRevenue
from loadrush_analytics.pipelines.trend import (
    TrendAggregator,
    TrendAnalytics,
    TrendDirection,
    TrendMetric,
    calculate_trend,
)
from loadrush_analytics.pipelines.usage import UsageAggregator, UsageAnalytics
from loadrush_analytics.pipelines.subscriptions import SubscriptionAggregator, SubscriptionAnalytics
from loadrush_analytics.pipelines.load_counts import LoadStatusAggregator, LoadStatusCounts
from loadrush_analytics.pipelines.insights import (
    Insight,
    InsightRule,
    InsightSummary,
    InsightSynthesizer,
    InsightType,
)

__all__ = [
    "Pipeline",
    "RevenueAggregator",
    "PlatformRevenue",
    "TrendAggregator",
    "TrendAnalytics",
    "TrendDirection",
    "TrendMetric",
    "calculate_trend",
    "UsageAggregator",
    "UsageAnalytics",
    "SubscriptionAggregator",
    "SubscriptionAnalytics",
    "LoadStatusAggregator",
    "LoadStatusCounts",
    "Insight",
    "InsightRule",
    "InsightSummary",
    "InsightSynthesizer",
    "InsightType",
]
