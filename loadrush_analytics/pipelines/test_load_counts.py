from datetime import date

from loadrush_analytics.pipelines.load_counts import DailyCount, LoadStatusAggregator, LoadStatusCounts
from loadrush_analytics.store.records import LoadRecord, LoadStatus


def load(doc_id, status, created=None):
    data = {"status": status}
    if created:
        data["createdAt"] = created
    return LoadRecord.from_dict(doc_id, data)


class TestLoadStatusAggregator:
    def test_counts_normalized_statuses(self):
        loads = [
            load("a", "Completed"),
            load("b", "delivered"),
            load("c", "Available"),
            load("d", "In Transit"),
            load("e", "matched"),
            load("f", "canceled"),
            load("g", "lost at sea"),
            load("h", None),
        ]
        counts = LoadStatusAggregator().process(loads)

        assert counts.delivered == 2
        assert counts.posted == 1
        assert counts.in_transit == 1
        assert counts.matched == 1
        assert counts.cancelled == 1
        assert counts.unknown == 2
        assert counts.total == 8
        assert counts.count(LoadStatus.DELIVERED) == 2
        assert counts.is_loading is False

    def test_loads_by_day_in_utc(self):
        loads = [
            load("a", "posted", "2025-03-10T23:30:00Z"),
            load("b", "posted", "2025-03-10T01:00:00Z"),
            # 22:00 in Chicago on the 10th is already the 11th in UTC
            load("c", "posted", "2025-03-10T22:00:00-05:00"),
            load("d", "posted"),
        ]
        counts = LoadStatusAggregator().process(loads)
        assert counts.loads_by_day == (
            DailyCount(date(2025, 3, 10), 2),
            DailyCount(date(2025, 3, 11), 1),
        )

    def test_keeps_most_recent_days(self):
        loads = [load(str(day), "posted", f"2025-03-{day:02d}T12:00:00Z") for day in range(1, 11)]
        counts = LoadStatusAggregator().process(loads)

        assert len(counts.loads_by_day) == 7
        assert counts.loads_by_day[0].day == date(2025, 3, 4)
        assert counts.loads_by_day[-1].day == date(2025, 3, 10)

    def test_empty(self):
        counts = LoadStatusAggregator().process([])
        assert counts.total == 0
        assert counts.loads_by_day == ()


class TestLoadStatusCounts:
    def test_initial_state(self):
        assert LoadStatusCounts().is_loading

    def test_with_error(self):
        failed = LoadStatusAggregator().process([load("a", "posted")]).with_error("boom")
        assert failed.posted == 1
        assert failed.error == "boom"
