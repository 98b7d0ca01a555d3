"""
Configuration

Load settings from environment variables.
"""

import os


class Config:
    # Postgres (document table behind SqlRecordStore)
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        f"postgresql://{os.getenv('POSTGRES_USER', 'loadrush')}:{os.getenv('POSTGRES_PASSWORD', 'loadrush')}@{os.getenv('POSTGRES_HOST', 'localhost')}:{os.getenv('POSTGRES_PORT', '5432')}/{os.getenv('POSTGRES_DB', 'loadrush')}"
    )

    # Kafka
    KAFKA_BOOTSTRAP_SERVERS = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
    KAFKA_CHANGES_TOPIC = os.getenv("KAFKA_CHANGES_TOPIC", "loadrush.changes")
    KAFKA_INSIGHTS_TOPIC = os.getenv("KAFKA_INSIGHTS_TOPIC", "loadrush.insights")
    KAFKA_GROUP_ID = os.getenv("KAFKA_GROUP_ID", "loadrush-analytics")

    # Metrics
    METRICS_PORT = int(os.getenv("METRICS_PORT", "9090"))

    # Analytics
    COMMISSION_RATE = float(os.getenv("COMMISSION_RATE", "0.05"))
    TREND_POLL_SECONDS = float(os.getenv("TREND_POLL_SECONDS", "60"))
    TREND_PREVIOUS_SOURCE = os.getenv("TREND_PREVIOUS_SOURCE", "snapshots")  # snapshots | synthesized
    ACTIVITY_TIMEZONE = os.getenv("ACTIVITY_TIMEZONE", "America/Chicago")
    MAX_INSIGHTS = int(os.getenv("MAX_INSIGHTS", "5"))
