"""
Service Workers

Long-running processes that bind the analytics dashboard to Kafka and
expose metrics.
"""

from loadrush_analytics.workers.base import ServiceWorker, WorkerConfig, WorkerState, run_worker

__all__ = ["ServiceWorker", "WorkerConfig", "WorkerState", "run_worker"]
