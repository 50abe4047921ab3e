"""Unit tests for snapshot collection: append-only writes and per-item failures"""
from datetime import timedelta

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import SQLAlchemyError

from core.models import VideoSnapshot
from collection.jobs.snapshot_collector import SnapshotCollector


def _snapshot_count(session_factory) -> int:
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(VideoSnapshot)).scalar_one()


class TestSnapshotCollector:
    """Each candidate becomes one new row; failures are counted, not raised"""

    def test_creates_snapshot_with_metrics(self, session_factory, make_provider, make_video, settings, now):
        provider = make_provider(videos=[
            make_video("v1", view_count=500, like_count=20, comment_count=5,
                       published_at=now - timedelta(minutes=30), tags=["Drone"], title="Drone racing"),
        ])
        collector = SnapshotCollector(provider, settings, session_factory)

        result = collector.collect(["v1"], now=now)

        assert result.created == 1
        assert result.errors == 0
        with session_factory() as db:
            snapshot = db.execute(select(VideoSnapshot)).scalar_one()
            assert snapshot.video_id == "v1"
            assert snapshot.view_velocity == pytest.approx(500.0)
            assert snapshot.engagement_rate == pytest.approx(5.0)
            assert snapshot.tags == ["Drone"]
            assert snapshot.channel_id == "channel_a"

    def test_fetch_failure_does_not_stop_batch(self, session_factory, make_provider, make_video, settings, now):
        provider = make_provider(
            videos=[make_video("ok1"), make_video("ok2"), make_video("broken")],
            failing=["broken"],
        )
        collector = SnapshotCollector(provider, settings, session_factory)

        result = collector.collect(["ok1", "broken", "missing", "ok2"], now=now)

        assert result.processed == 4
        assert result.created == 2
        assert result.errors == 2
        assert _snapshot_count(session_factory) == 2

    def test_repeated_collection_appends(self, session_factory, make_provider, make_video, settings, now):
        """A second capture of the same video is a new row, never an update"""
        provider = make_provider(videos=[make_video("v1", view_count=1000)])
        collector = SnapshotCollector(provider, settings, session_factory)

        collector.collect(["v1"], now=now)
        provider.videos["v1"] = make_video("v1", view_count=1800)
        collector.collect(["v1"], now=now + timedelta(hours=1))

        with session_factory() as db:
            views = db.execute(
                select(VideoSnapshot.view_count).order_by(VideoSnapshot.snapshot_date)
            ).scalars().all()
        assert views == [1000, 1800]

    def test_persistence_failure_is_counted(self, session_factory, make_provider, make_video, settings, now):
        """A failing row write is rolled back and the rest still land"""
        def fail_for_bad_row(session, flush_context, instances):
            for obj in session.new:
                if isinstance(obj, VideoSnapshot) and obj.video_id == "bad":
                    raise SQLAlchemyError("simulated write failure")

        event.listen(session_factory, "before_flush", fail_for_bad_row)
        provider = make_provider(videos=[make_video("good"), make_video("bad")])
        collector = SnapshotCollector(provider, settings, session_factory)

        result = collector.collect(["good", "bad"], now=now)

        assert result.created == 1
        assert result.errors == 1
        assert _snapshot_count(session_factory) == 1

    def test_dry_run_writes_nothing(self, session_factory, make_provider, make_video, settings, now):
        provider = make_provider(videos=[make_video("v1")])
        collector = SnapshotCollector(provider, settings, session_factory)

        result = collector.collect(["v1"], now=now, dry_run=True)

        assert result.processed == 1
        assert result.created == 0
        assert _snapshot_count(session_factory) == 0

    def test_no_candidates_is_no_data(self, session_factory, make_provider, settings, now):
        collector = SnapshotCollector(make_provider(), settings, session_factory)

        result = collector.collect([], now=now)

        assert result.status == "no_data"
        assert result.errors == 0
