"""
Pipeline Handlers

Connects pure pipelines to infrastructure (record store subscriptions,
metrics, logging). This is the ONLY place pipelines meet infrastructure.

Each monitor owns one output and replaces it wholesale on every
recompute. Listeners registered with on_change() are called with the new
output. Monitors update independently; the insight monitor is eventually
consistent with its three inputs.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from loadrush_analytics.core.config import Config
from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.core.metrics import metrics
from loadrush_analytics.history import create_history
from loadrush_analytics.pipelines import (
    InsightSummary,
    InsightSynthesizer,
    LoadStatusAggregator,
    LoadStatusCounts,
    PlatformRevenue,
    RevenueAggregator,
    SubscriptionAggregator,
    SubscriptionAnalytics,
    TrendAggregator,
    TrendAnalytics,
    UsageAggregator,
    UsageAnalytics,
)
from loadrush_analytics.store import (
    ACTIVE_STATUSES,
    LoadRecord,
    LoadStatus,
    Query,
    RecordStore,
    Subscription,
    SubscriptionRecord,
    status_in,
)

logger = get_logger("handlers", labels={"component": "handlers"})

COMPLETED_LOADS = Query("loads").matching(status_in(LoadStatus.DELIVERED))
ACTIVE_LOADS = Query("loads").matching(status_in(*ACTIVE_STATUSES))
ALL_LOADS = Query("loads")
ACTIVE_DRIVERS = Query("subscriptions").where("role", "==", "driver").where("status", "==", "active")
ACTIVE_SHIPPERS = Query("subscriptions").where("role", "==", "shipper").where("status", "==", "active")
ACTIVE_SUBSCRIPTIONS = Query("subscriptions").where("status", "==", "active")


def to_loads(documents) -> list[LoadRecord]:
    return [LoadRecord.from_dict(doc.id, doc.data) for doc in documents]


def to_subscriptions(documents) -> list[SubscriptionRecord]:
    return [SubscriptionRecord.from_dict(doc.id, doc.data) for doc in documents]


class Monitor:
    """
    Base class for live outputs.

    Example:
        monitor = RevenueMonitor(store)
        monitor.on_change(lambda revenue: print(revenue.formatted_revenue))
        monitor.start()
        ...
        monitor.stop()
    """

    name = "monitor"

    def __init__(self, initial):
        self.output = initial
        self._listeners: list[Callable] = []
        self._subscriptions: list[Subscription] = []
        self.started = False

    def on_change(self, listener: Callable) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return remove

    def start(self):
        if self.started:
            return
        self.started = True
        logger.info(f"Starting {self.name} monitor", extra={"labels": {"monitor": self.name}})
        self._start()

    def stop(self):
        if not self.started:
            return
        self.started = False
        logger.info(f"Stopping {self.name} monitor", extra={"labels": {"monitor": self.name}})
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._stop()

    def _start(self):
        pass

    def _stop(self):
        pass

    def _publish(self, output):
        self.output = output
        for listener in list(self._listeners):
            listener(output)

    def _fail(self, error: Exception):
        metrics.aggregation_errors.labels(aggregator=self.name).inc()
        logger.error(f"{self.name} aggregation error: {error}", extra={"labels": {"monitor": self.name}})
        self._publish(self.output.with_error(str(error)))


class RevenueMonitor(Monitor):
    name = "revenue"

    def __init__(self, store: RecordStore, aggregator: Optional[RevenueAggregator] = None):
        super().__init__(PlatformRevenue())
        self.store = store
        self.aggregator = aggregator or RevenueAggregator(Config.COMMISSION_RATE)

    def _start(self):
        self._subscriptions.append(self.store.subscribe(COMPLETED_LOADS, self._on_snapshot, self._fail))

    def _on_snapshot(self, documents):
        try:
            revenue = self.aggregator.process(to_loads(documents))
        except (ArithmeticError, TypeError, ValueError) as e:
            self._fail(e)
            return
        metrics.aggregation_runs.labels(aggregator=self.name).inc()
        metrics.platform_revenue.set(revenue.total_revenue)
        metrics.platform_commission.set(revenue.commission)
        logger.info(
            f"Revenue computed: {revenue.formatted_revenue} from {revenue.completed_loads_count} completed loads",
            extra={"labels": {"monitor": self.name}},
        )
        self._publish(revenue)


class UsageMonitor(Monitor):
    name = "usage"

    def __init__(self, store: RecordStore, aggregator: Optional[UsageAggregator] = None):
        super().__init__(UsageAnalytics())
        self.store = store
        self.aggregator = aggregator or UsageAggregator(Config.ACTIVITY_TIMEZONE)

    def _start(self):
        self._subscriptions.append(self.store.subscribe(ALL_LOADS, self._on_snapshot, self._fail))

    def _on_snapshot(self, documents):
        try:
            usage = self.aggregator.process(to_loads(documents))
        except (ArithmeticError, TypeError, ValueError) as e:
            self._fail(e)
            return
        metrics.aggregation_runs.labels(aggregator=self.name).inc()
        if usage.skipped_records:
            metrics.records_skipped.labels(aggregator=self.name, field="timestamp").inc(usage.skipped_records)
        self._publish(usage)


class SubscriptionMonitor(Monitor):
    name = "subscriptions"

    def __init__(self, store: RecordStore, aggregator: Optional[SubscriptionAggregator] = None):
        super().__init__(SubscriptionAnalytics())
        self.store = store
        self.aggregator = aggregator or SubscriptionAggregator()

    def _start(self):
        self._subscriptions.append(self.store.subscribe(ACTIVE_SUBSCRIPTIONS, self._on_snapshot, self._fail))

    def _on_snapshot(self, documents):
        try:
            subs = self.aggregator.process(to_subscriptions(documents))
        except (ArithmeticError, TypeError, ValueError) as e:
            self._fail(e)
            return
        metrics.aggregation_runs.labels(aggregator=self.name).inc()
        metrics.active_subscriptions.labels(role="driver").set(subs.driver_count)
        metrics.active_subscriptions.labels(role="shipper").set(subs.shipper_count)
        metrics.subscription_mrr.labels(role="driver").set(subs.driver_mrr)
        metrics.subscription_mrr.labels(role="shipper").set(subs.shipper_mrr)
        logger.info(
            f"Subscriptions computed: {subs.total_count} active, {subs.formatted_total_mrr} MRR",
            extra={"labels": {"monitor": self.name}},
        )
        self._publish(subs)


class LoadStatusMonitor(Monitor):
    name = "load_counts"

    def __init__(self, store: RecordStore, aggregator: Optional[LoadStatusAggregator] = None):
        super().__init__(LoadStatusCounts())
        self.store = store
        self.aggregator = aggregator or LoadStatusAggregator()

    def _start(self):
        self._subscriptions.append(self.store.subscribe(ALL_LOADS, self._on_snapshot, self._fail))

    def _on_snapshot(self, documents):
        try:
            counts = self.aggregator.process(to_loads(documents))
        except (ArithmeticError, TypeError, ValueError) as e:
            self._fail(e)
            return
        metrics.aggregation_runs.labels(aggregator=self.name).inc()
        for status in LoadStatus:
            metrics.loads_by_status.labels(status=status.value).set(counts.count(status))
        metrics.loads_by_status.labels(status="unknown").set(counts.unknown)
        self._publish(counts)


class TrendMonitor(Monitor):
    """
    Refreshes on any change to loads or subscriptions and on a polling
    interval. Refresh requests that arrive while one is running are
    coalesced into a single follow-up pass.

    Poll ticks read the store on a worker thread so a slow database does
    not stall the event loop; aggregation and listeners always run on the
    loop thread. A polled read is dropped if another refresh finished
    while it was in flight.
    """

    name = "trend"

    def __init__(
        self,
        store: RecordStore,
        aggregator: Optional[TrendAggregator] = None,
        poll_seconds: float = Config.TREND_POLL_SECONDS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        super().__init__(TrendAnalytics())
        self.store = store
        self.aggregator = aggregator or TrendAggregator(create_history(Config.TREND_PREVIOUS_SOURCE, store))
        self.poll_seconds = poll_seconds
        self.clock = clock
        self.refresh_count = 0
        self._refreshing = False
        self._pending = False
        self._subscribing = False
        self._poll_task: Optional[asyncio.Task] = None

    def _start(self):
        # Subscriptions deliver immediately; one explicit refresh covers them all
        self._subscribing = True
        try:
            for collection in ("loads", "subscriptions"):
                self._subscriptions.append(
                    self.store.subscribe(Query(collection), self._on_change, self._fail)
                )
        finally:
            self._subscribing = False
        self.refresh()
        self._start_polling()

    def _stop(self):
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    def _start_polling(self):
        if self.poll_seconds <= 0:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, trend polling disabled", extra={"labels": {"monitor": self.name}})
            return
        self._poll_task = loop.create_task(self._poll())

    async def _poll(self):
        while True:
            await asyncio.sleep(self.poll_seconds)
            logger.debug(f"Auto-refresh triggered ({self.poll_seconds}s interval)", extra={"labels": {"monitor": self.name}})
            await self._poll_once()

    async def _poll_once(self):
        generation = self.refresh_count
        try:
            inputs = await asyncio.to_thread(self._fetch)
        except Exception as e:
            # Poll keeps retrying on the next tick
            if self.started:
                self._fail(e)
            return
        if not self.started or self._refreshing or self.refresh_count != generation:
            return
        self._refreshing = True
        self._pending = False
        try:
            self._refresh_once(inputs)
        finally:
            self._refreshing = False
        if self._pending:
            self.refresh()

    def _on_change(self, _documents):
        if not self._subscribing:
            self.refresh()

    def refresh(self):
        if not self.started:
            return
        if self._refreshing:
            self._pending = True
            return
        self._refreshing = True
        try:
            while True:
                self._pending = False
                self._refresh_once()
                if not self._pending or not self.started:
                    break
        finally:
            self._refreshing = False

    def _fetch(self) -> dict:
        return dict(
            completed_loads=to_loads(self.store.fetch(COMPLETED_LOADS)),
            active_loads=to_loads(self.store.fetch(ACTIVE_LOADS)),
            drivers=to_subscriptions(self.store.fetch(ACTIVE_DRIVERS)),
            shippers=to_subscriptions(self.store.fetch(ACTIVE_SHIPPERS)),
        )

    def _refresh_once(self, inputs: Optional[dict] = None):
        self.refresh_count += 1
        try:
            if inputs is None:
                inputs = self._fetch()
            trends = self.aggregator.process(now=self.clock(), **inputs)
        except Exception as e:
            # Poll keeps retrying on the next tick
            self._fail(e)
            return

        metrics.aggregation_runs.labels(aggregator=self.name).inc()
        for kpi, metric in trends.metrics().items():
            metrics.trend_current_value.labels(kpi=kpi).set(metric.current_value)
            metrics.trend_percent_change.labels(kpi=kpi).set(metric.signed_change)
        self._publish(trends)


class InsightMonitor(Monitor):
    """
    Re-synthesizes whenever any input changes, once all three inputs have
    loaded. While an input is failing the last insights are kept and the
    error is surfaced on the summary.
    """

    name = "insights"

    def __init__(
        self,
        revenue: RevenueMonitor,
        trend: TrendMonitor,
        usage: UsageMonitor,
        synthesizer: Optional[InsightSynthesizer] = None,
    ):
        super().__init__(InsightSummary())
        self.revenue = revenue
        self.trend = trend
        self.usage = usage
        self.synthesizer = synthesizer or InsightSynthesizer(limit=Config.MAX_INSIGHTS)
        self._removers: list[Callable[[], None]] = []

    def _start(self):
        for monitor in (self.revenue, self.trend, self.usage):
            self._removers.append(monitor.on_change(self._on_input))
        self._on_input(None)

    def _stop(self):
        for remove in self._removers:
            remove()
        self._removers = []

    def _on_input(self, _output):
        trend, usage, revenue = self.trend.output, self.usage.output, self.revenue.output
        if not self.synthesizer.is_ready(trend, usage, revenue):
            return

        errors = [o.error for o in (trend, usage, revenue) if o.error]
        if errors:
            if self.output.error != errors[0]:
                self._publish(InsightSummary(
                    insights=self.output.insights,
                    is_loading=False,
                    error=errors[0],
                    last_generated=self.output.last_generated,
                ))
            return

        summary = self.synthesizer.process(trend, usage, revenue)
        metrics.aggregation_runs.labels(aggregator=self.name).inc()
        for insight in summary.insights:
            metrics.insights_generated.labels(insight_id=insight.id, type=insight.type.value).inc()
        logger.info(f"Generated {len(summary.insights)} insights", extra={"labels": {"monitor": self.name}})
        self._publish(summary)


class AnalyticsDashboard:
    """
    Owns the aggregator monitors and the insight monitor. The
    subscription and load-status rollups are admin figures and do not feed
    the insights.

    Example:
        dashboard = AnalyticsDashboard(MemoryRecordStore())
        dashboard.on_insights(lambda summary: print(summary.to_dict()))
        dashboard.start()
        ...
        dashboard.stop()
    """

    def __init__(self, store: RecordStore, poll_seconds: float = Config.TREND_POLL_SECONDS,
                 trend_aggregator: Optional[TrendAggregator] = None, **trend_kwargs):
        self.store = store
        self.revenue = RevenueMonitor(store)
        self.usage = UsageMonitor(store)
        self.trend = TrendMonitor(store, trend_aggregator, poll_seconds=poll_seconds, **trend_kwargs)
        self.insights = InsightMonitor(self.revenue, self.trend, self.usage)
        self.subscriptions = SubscriptionMonitor(store)
        self.load_counts = LoadStatusMonitor(store)

    def on_insights(self, listener: Callable[[InsightSummary], None]):
        return self.insights.on_change(listener)

    @property
    def summary(self) -> InsightSummary:
        return self.insights.output

    def start(self):
        # Insights first so it sees the aggregators' first outputs
        self.insights.start()
        self.revenue.start()
        self.usage.start()
        self.trend.start()
        self.subscriptions.start()
        self.load_counts.start()

    def stop(self):
        self.load_counts.stop()
        self.subscriptions.stop()
        self.trend.stop()
        self.usage.stop()
        self.revenue.stop()
        self.insights.stop()
