"""
Centralized Logging Setup

One JSON object per line on stdout, shared by the service, the workers and
the operational scripts.

    logger = get_logger("pipelines.usage", labels={"component": "usage"})
    logger.warning("Invalid created_at", extra={"labels": {"load_id": "l1"}})

Labels given to get_logger() are defaults; labels passed per call through
extra={"labels": ...} are merged on top.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

SERVICE_NAME = os.getenv("SERVICE_NAME", "loadrush-analytics")


class JsonFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineNo": record.lineno,
        }
        if hasattr(record, "labels"):
            entry["labels"] = record.labels
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class LabelFilter(logging.Filter):
    def __init__(self, labels: dict):
        super().__init__()
        self.labels = dict(labels)

    def filter(self, record):
        record.labels = {**self.labels, **getattr(record, "labels", {})}
        return True


def get_logger(name=None, level=None, labels=None):
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
    logger.propagate = False
    logger.setLevel(level or os.getenv("LOG_LEVEL", "INFO"))
    if labels:
        for existing in [f for f in logger.filters if isinstance(f, LabelFilter)]:
            logger.removeFilter(existing)
        logger.addFilter(LabelFilter(labels))
    return logger
