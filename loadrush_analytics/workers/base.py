"""
Worker Base

A long-running service process that:
- Starts a Prometheus metrics server
- Runs setup(), then waits until SIGTERM/SIGINT or stop()
- Runs teardown() exactly once on the way out
"""

import asyncio
import signal
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.core.metrics import MetricsServer

logger = get_logger("worker.base", labels={"component": "worker-base"})


class WorkerState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class WorkerConfig:
    """Configuration for a service worker."""
    name: str
    metrics_port: Optional[int] = 9090


class ServiceWorker(ABC):
    """
    Base class for service workers.

    Each worker implements:
    - setup(): connect and start monitors
    - teardown(): release everything setup() acquired

    Example:
        class InsightWorker(ServiceWorker):
            async def setup(self):
                self.dashboard.start()

            async def teardown(self):
                self.dashboard.stop()
    """

    def __init__(self, config: WorkerConfig):
        self.config = config
        self.state = WorkerState.STOPPED
        self._metrics_server: Optional[MetricsServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    async def setup(self) -> None:
        pass

    @abstractmethod
    async def teardown(self) -> None:
        pass

    def stop(self):
        """Ask a running worker to shut down."""
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def run(self) -> None:
        """Main entry point - runs the worker until stopped."""
        self.state = WorkerState.STARTING
        self._shutdown_event = asyncio.Event()
        logger.info(f"Starting worker: {self.name}", extra={"labels": {"worker": self.name}})

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._signal_handler)
            except (NotImplementedError, RuntimeError):
                # Not on the main thread, or platform without signal support
                pass

        if self.config.metrics_port:
            self._metrics_server = MetricsServer(self.config.metrics_port)
            self._metrics_server.start()

        try:
            await self.setup()
            self.state = WorkerState.RUNNING
            logger.info("Running", extra={"labels": {"worker": self.name}})
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await self._shutdown()

    def _signal_handler(self):
        logger.warning("Shutdown signal received", extra={"labels": {"worker": self.name}})
        self.stop()

    async def _shutdown(self) -> None:
        if self.state == WorkerState.STOPPED:
            return

        self.state = WorkerState.STOPPING
        logger.info("Shutting down...", extra={"labels": {"worker": self.name}})

        await self.teardown()

        if self._metrics_server:
            self._metrics_server.stop()
            self._metrics_server = None

        self.state = WorkerState.STOPPED
        logger.info("Stopped", extra={"labels": {"worker": self.name}})


def run_worker(worker: ServiceWorker):
    asyncio.run(worker.run())
