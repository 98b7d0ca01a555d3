"""
Insight Synthesis Pipeline

Turns trend, usage and revenue outputs into a short ranked list of
human-readable insights. No infrastructure dependencies - pure data
processing.

Rules are evaluated in a fixed order; each rule group yields at most one
insight. Candidates are then stable-sorted by type priority
(positive < warning < negative < neutral) and capped, so lower-priority
insights drop off once the cap is filled by higher-priority ones.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.pipelines.base import Pipeline
from loadrush_analytics.pipelines.formatting import format_hour, time_of_day
from loadrush_analytics.pipelines.revenue import PlatformRevenue
from loadrush_analytics.pipelines.trend import TrendAnalytics, TrendDirection
from loadrush_analytics.pipelines.usage import UsageAnalytics

logger = get_logger("pipelines.insights", labels={"component": "insights"})

MAX_INSIGHTS = 5

UP = TrendDirection.UP
DOWN = TrendDirection.DOWN


class InsightType(Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


PRIORITY = {
    InsightType.POSITIVE: 0,
    InsightType.WARNING: 1,
    InsightType.NEGATIVE: 2,
    InsightType.NEUTRAL: 3,
}


@dataclass(frozen=True)
class Insight:
    id: str
    text: str
    type: InsightType
    icon: str

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "type": self.type.value, "icon": self.icon}


@dataclass(frozen=True)
class InsightSummary:
    insights: tuple = field(default_factory=tuple)
    is_loading: bool = True
    error: Optional[str] = None
    last_generated: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "insights": [i.to_dict() for i in self.insights],
            "isLoading": self.is_loading,
            "error": self.error,
            "lastGenerated": self.last_generated.isoformat() if self.last_generated else None,
        }


@dataclass(frozen=True)
class InsightInputs:
    trend: TrendAnalytics
    usage: UsageAnalytics
    revenue: PlatformRevenue


@dataclass
class InsightRule:
    """
    One threshold rule.

    Example:
        InsightRule(
            id="driver-growth",
            type=InsightType.POSITIVE,
            icon="🚛",
            condition=lambda i: i.trend.driver_count.direction is UP and i.trend.driver_count.percent_change > 3,
            text=lambda i: f"Driver base expanded {i.trend.driver_count.percent_change:.1f}% this week.",
        )
    """
    id: str
    type: InsightType
    icon: str
    condition: Callable[[InsightInputs], bool]
    text: Callable[[InsightInputs], str]
    enabled: bool = True

    def evaluate(self, inputs: InsightInputs) -> Optional[Insight]:
        if not self.enabled or not self.condition(inputs):
            return None
        return Insight(id=self.id, text=self.text(inputs), type=self.type, icon=self.icon)


def _moved(metric, direction: TrendDirection, threshold: float) -> bool:
    return metric.direction is direction and metric.percent_change > threshold


def _share(part: float, total: float) -> str:
    return f"{part / total * 100:.0f}"


def default_rules() -> list[list[InsightRule]]:
    """
    The rule battery, in evaluation order. Each inner list is a group where
    the first matching rule wins (growth / decline / stable branches).
    """
    return [
        [
            InsightRule(
                id="revenue-growth",
                type=InsightType.POSITIVE,
                icon="📈",
                condition=lambda i: _moved(i.trend.revenue, UP, 5),
                text=lambda i: (
                    f"Platform revenue surged {i.trend.revenue.percent_change:.1f}% week-over-week, "
                    f"reaching {i.trend.revenue.formatted_current}. Strong growth momentum detected."
                ),
            ),
            InsightRule(
                id="revenue-decline",
                type=InsightType.WARNING,
                icon="⚠️",
                condition=lambda i: _moved(i.trend.revenue, DOWN, 5),
                text=lambda i: (
                    f"Revenue declined {i.trend.revenue.percent_change:.1f}% from last week "
                    f"({i.trend.revenue.formatted_previous} → {i.trend.revenue.formatted_current}). "
                    f"Monitor shipper activity closely."
                ),
            ),
            InsightRule(
                id="revenue-stable",
                type=InsightType.NEUTRAL,
                icon="💰",
                condition=lambda i: i.trend.revenue.current_value > 0,
                text=lambda i: (
                    f"Platform revenue holding steady at {i.trend.revenue.formatted_current} "
                    f"with {i.revenue.completed_loads_count} completed loads this week."
                ),
            ),
        ],
        [
            InsightRule(
                id="driver-growth",
                type=InsightType.POSITIVE,
                icon="🚛",
                condition=lambda i: _moved(i.trend.driver_count, UP, 3),
                text=lambda i: (
                    f"Driver base expanded {i.trend.driver_count.percent_change:.1f}% this week. "
                    f"{i.trend.driver_count.formatted_current} active drivers now on the platform."
                ),
            ),
            InsightRule(
                id="driver-decline",
                type=InsightType.NEGATIVE,
                icon="🔻",
                condition=lambda i: _moved(i.trend.driver_count, DOWN, 5),
                text=lambda i: (
                    f"Active driver count dropped {i.trend.driver_count.percent_change:.1f}% "
                    f"({i.trend.driver_count.formatted_previous} → {i.trend.driver_count.formatted_current}). "
                    f"Consider retention initiatives."
                ),
            ),
        ],
        [
            InsightRule(
                id="shipper-growth",
                type=InsightType.POSITIVE,
                icon="📦",
                condition=lambda i: _moved(i.trend.shipper_count, UP, 3),
                text=lambda i: (
                    f"Shipper acquisition up {i.trend.shipper_count.percent_change:.1f}% week-over-week. "
                    f"{i.trend.shipper_count.formatted_current} active shippers posting loads."
                ),
            ),
            InsightRule(
                id="shipper-decline",
                type=InsightType.WARNING,
                icon="⚠️",
                condition=lambda i: _moved(i.trend.shipper_count, DOWN, 5),
                text=lambda i: (
                    f"Shipper activity decreased {i.trend.shipper_count.percent_change:.1f}% since last week. "
                    f"Review onboarding and engagement strategies."
                ),
            ),
        ],
        [
            InsightRule(
                id="driver-peak-time",
                type=InsightType.NEUTRAL,
                icon="⏰",
                condition=lambda i: i.usage.total_driver_accepts > 0,
                text=lambda i: (
                    f"Driver activity peaks at {format_hour(i.usage.peak_driver_hour)} {i.usage.timezone_label} "
                    f"with {i.usage.driver_activity[i.usage.peak_driver_hour]} load accepts "
                    f"({_share(i.usage.driver_activity[i.usage.peak_driver_hour], i.usage.total_driver_accepts)}% "
                    f"of daily activity). Optimize load postings for {time_of_day(i.usage.peak_driver_hour)} hours."
                ),
            ),
        ],
        [
            InsightRule(
                id="timing-mismatch",
                type=InsightType.WARNING,
                icon="🔄",
                # Only meaningful alongside a driver peak
                condition=lambda i: (
                    i.usage.total_driver_accepts > 0
                    and i.usage.total_shipper_posts > 0
                    and abs(i.usage.peak_shipper_hour - i.usage.peak_driver_hour) > 3
                ),
                text=lambda i: (
                    f"Shippers post most loads at {format_hour(i.usage.peak_shipper_hour)} {i.usage.timezone_label} "
                    f"({i.usage.shipper_activity[i.usage.peak_shipper_hour]} posts, "
                    f"{_share(i.usage.shipper_activity[i.usage.peak_shipper_hour], i.usage.total_shipper_posts)}%), "
                    f"but drivers are most active at {format_hour(i.usage.peak_driver_hour)} {i.usage.timezone_label}. "
                    f"Consider incentivizing aligned timing."
                ),
            ),
        ],
        [
            InsightRule(
                id="completion-surge",
                type=InsightType.POSITIVE,
                icon="✅",
                condition=lambda i: _moved(i.trend.completed_loads, UP, 10),
                text=lambda i: (
                    f"Load completion rate jumped {i.trend.completed_loads.percent_change:.1f}% this week "
                    f"({i.trend.completed_loads.formatted_current} completed). Excellent operational efficiency."
                ),
            ),
            InsightRule(
                id="completion-drop",
                type=InsightType.NEGATIVE,
                icon="❌",
                condition=lambda i: _moved(i.trend.completed_loads, DOWN, 10),
                text=lambda i: (
                    f"Completed loads fell {i.trend.completed_loads.percent_change:.1f}% from last week. "
                    f"Investigate potential bottlenecks in driver-shipper matching."
                ),
            ),
        ],
        [
            InsightRule(
                id="supply-demand-imbalance",
                type=InsightType.WARNING,
                icon="⚖️",
                condition=lambda i: i.trend.active_loads.current_value > 50 and i.trend.driver_count.current_value < 20,
                text=lambda i: (
                    f"High load volume ({i.trend.active_loads.formatted_current} active) with limited driver "
                    f"capacity ({i.trend.driver_count.formatted_current} active). Prioritize driver recruitment."
                ),
            ),
        ],
        [
            InsightRule(
                id="platform-earnings",
                type=InsightType.NEUTRAL,
                icon="💵",
                condition=lambda i: i.revenue.commission > 0,
                text=lambda i: (
                    f"LoadRush earned {i.revenue.formatted_commission} in platform fees "
                    f"({i.revenue.commission / i.revenue.total_revenue * 100:.1f}% commission) "
                    f"from {i.revenue.completed_loads_count} completed loads."
                ),
            ),
        ],
    ]


def rank(candidates: list[Insight], limit: int = MAX_INSIGHTS) -> list[Insight]:
    """Stable sort by type priority, then keep the first `limit`."""
    return sorted(candidates, key=lambda insight: PRIORITY[insight.type])[:limit]


class InsightSynthesizer(Pipeline):
    """
    Example:
        synthesizer = InsightSynthesizer()
        if synthesizer.is_ready(trend, usage, revenue):
            summary = synthesizer.process(trend, usage, revenue)
            for insight in summary.insights:
                print(insight.icon, insight.text)
    """

    def __init__(self, rules: Optional[list[list[InsightRule]]] = None, limit: int = MAX_INSIGHTS):
        self.rules = rules if rules is not None else default_rules()
        self.limit = limit

    @property
    def name(self) -> str:
        return "insights"

    @staticmethod
    def is_ready(trend: TrendAnalytics, usage: UsageAnalytics, revenue: PlatformRevenue) -> bool:
        return not (trend.is_loading or usage.is_loading or revenue.is_loading)

    def candidates(self, inputs: InsightInputs) -> list[Insight]:
        found = []
        for group in self.rules:
            for rule in group:
                try:
                    insight = rule.evaluate(inputs)
                except (ArithmeticError, IndexError, TypeError, ValueError) as e:
                    logger.error(f"Insight rule {rule.id} failed: {e}", extra={"labels": {"rule": rule.id}})
                    # The rest of the group is mutually exclusive with this rule
                    break
                if insight:
                    found.append(insight)
                    break
        return found

    def process(
        self,
        trend: TrendAnalytics,
        usage: UsageAnalytics,
        revenue: PlatformRevenue,
        now: Optional[datetime] = None,
    ) -> InsightSummary:
        inputs = InsightInputs(trend=trend, usage=usage, revenue=revenue)
        insights = rank(self.candidates(inputs), self.limit)
        return InsightSummary(
            insights=tuple(insights),
            is_loading=False,
            error=None,
            last_generated=now or datetime.now(timezone.utc),
        )

    def enable_rule(self, rule_id: str):
        self._set_enabled(rule_id, True)

    def disable_rule(self, rule_id: str):
        self._set_enabled(rule_id, False)

    def _set_enabled(self, rule_id: str, enabled: bool):
        for group in self.rules:
            for rule in group:
                if rule.id == rule_id:
                    rule.enabled = enabled
                    return
