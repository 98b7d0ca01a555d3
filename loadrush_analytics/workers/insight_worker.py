"""
Insight Worker

Runs the live analytics dashboard against the record store:
- consumes record change events from Kafka and refreshes live queries
- publishes every new insight summary to the insights topic
"""

import asyncio
from typing import Optional

from loadrush_analytics.core.broker import Broker, StartFrom
from loadrush_analytics.core.config import Config
from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.handlers import AnalyticsDashboard
from loadrush_analytics.pipelines import InsightSummary
from loadrush_analytics.store.base import RecordStore
from loadrush_analytics.store.sql import open_store
from loadrush_analytics.workers.base import ServiceWorker, WorkerConfig, run_worker
from loadrush_analytics.workers.change_feed import ChangeFeed

logger = get_logger("worker.insights", labels={"component": "insight-worker"})


class InsightWorker(ServiceWorker):
    def __init__(self, store: Optional[RecordStore] = None, broker: Optional[Broker] = None,
                 metrics_port: Optional[int] = Config.METRICS_PORT):
        super().__init__(WorkerConfig(name="insights", metrics_port=metrics_port))
        self.store = store
        self.broker = broker
        self.dashboard: Optional[AnalyticsDashboard] = None
        self._publishing: set[asyncio.Task] = set()

    async def setup(self) -> None:
        if self.store is None:
            self.store = open_store(Config.DATABASE_URL)
        if self.broker is None:
            self.broker = Broker(Config.KAFKA_BOOTSTRAP_SERVERS)

        await self.broker.connect_producer()
        await self.broker.connect_consumer(
            topic=Config.KAFKA_CHANGES_TOPIC,
            group_id=Config.KAFKA_GROUP_ID,
            start_from=StartFrom.LATEST,
        )

        self.dashboard = AnalyticsDashboard(self.store)
        self.dashboard.on_insights(self._on_insights)
        self.dashboard.start()

        await self.broker.listen(ChangeFeed(self.store).handle)
        logger.info(f"Consuming changes from {Config.KAFKA_CHANGES_TOPIC}",
                    extra={"labels": {"topic": Config.KAFKA_CHANGES_TOPIC}})

    async def teardown(self) -> None:
        if self.dashboard:
            self.dashboard.stop()
        if self._publishing:
            await asyncio.gather(*self._publishing, return_exceptions=True)
        if self.broker:
            await self.broker.disconnect()

    def _on_insights(self, summary: InsightSummary):
        task = asyncio.get_running_loop().create_task(self._publish(summary))
        self._publishing.add(task)
        task.add_done_callback(self._publishing.discard)

    async def _publish(self, summary: InsightSummary):
        try:
            await self.broker.publish(Config.KAFKA_INSIGHTS_TOPIC, summary.to_dict(), key="insights")
        except Exception as e:
            logger.error(f"Failed to publish insights: {e}", extra={"labels": {"topic": Config.KAFKA_INSIGHTS_TOPIC}})


if __name__ == "__main__":
    run_worker(InsightWorker())
