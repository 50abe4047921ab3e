"""Integration tests: full pipeline runs against SQLite and a fake provider"""
import json
import logging
from datetime import timedelta

import pytest
from sqlalchemy import func, select

import jobs.pipeline as pipeline
from core.errors import ConfigurationError
from core.logging import setup_json_logging
from core.models import ContentGap, TrackedChannel, Trend, VideoSnapshot
from collection.clients.provider import SearchResult
from jobs.pipeline import EXIT_CONFIGURATION_ERROR, PipelineRunner


def _count(session_factory, model):
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture
def provider(make_provider, make_video, now):
    videos = [
        make_video(f"v{i}", title="drone racing league", view_count=10000 + i * 1000, channel_id="UC_fav")
        for i in range(4)
    ]
    videos.append(make_video("c1", view_count=500, published_at=now - timedelta(days=200)))
    return make_provider(
        videos=videos,
        uploads={"UC_fav": ["v0", "v1", "v2", "v3"]},
        searches={"drone": SearchResult(keyword="drone", total_results=40, video_ids=["c1"])},
    )


@pytest.fixture
def runner(provider, settings, session_factory, store):
    store(TrackedChannel(channel_id="UC_fav"))
    return PipelineRunner(lambda: provider, settings, session_factory)


class TestPipelineRuns:
    """Collect -> aggregate -> score, end to end"""

    def test_full_run_produces_trends_and_gaps(self, runner, session_factory, now):
        collect, aggregate, score = runner.run(["collect", "aggregate", "score"], now=now)

        assert collect.created == 4
        assert aggregate.created == 3
        assert score.created == 1
        assert _count(session_factory, VideoSnapshot) == 4

        with session_factory() as db:
            keywords = db.execute(select(Trend.keyword).order_by(Trend.keyword)).scalars().all()
            gap = db.execute(select(ContentGap)).scalar_one()
        assert keywords == ["drone", "league", "racing"]
        assert gap.keyword == "drone"
        assert gap.video_count == 40

    def test_rerun_has_no_duplicate_derived_rows(self, runner, session_factory, now):
        """Snapshots append; trends and gaps stay one row per key"""
        runner.run(["collect", "aggregate", "score"], now=now)
        results = runner.run(["collect", "aggregate", "score"], now=now + timedelta(minutes=10))

        assert _count(session_factory, VideoSnapshot) == 8
        assert _count(session_factory, Trend) == 3
        assert _count(session_factory, ContentGap) == 1
        assert results[1].created == 0
        assert results[1].updated == 3

    def test_aggregate_twice_without_new_snapshots(self, runner, session_factory, now):
        runner.run(["collect"], now=now)
        runner.run(["aggregate"], now=now)
        runner.run(["aggregate"], now=now)

        with session_factory() as db:
            rows = db.execute(
                select(Trend.keyword, func.count()).group_by(Trend.keyword, Trend.period, Trend.trend_date)
            ).all()
        assert all(count == 1 for _, count in rows)

    def test_provider_failures_never_abort(self, make_provider, make_video, settings, session_factory, store, now):
        store(TrackedChannel(channel_id="UC_fav"), TrackedChannel(channel_id="UC_down"))
        provider = make_provider(
            videos=[make_video("v0")],
            uploads={"UC_fav": ["v0", "gone"]},
            failing=["UC_down"],
        )
        runner = PipelineRunner(lambda: provider, settings, session_factory)

        collect, = runner.run(["collect"], now=now)

        assert collect.created == 1
        assert collect.errors == 2

    def test_close_releases_provider(self, runner, provider, now):
        runner.run(["collect"], now=now)
        runner.close()

        assert provider.closed is True


class TestConfigurationErrors:
    """Missing credentials stop the run before anything is written"""

    def test_missing_credentials_abort_before_writes(self, settings, session_factory, now):
        def unconfigured():
            raise ConfigurationError("YOUTUBE_API_KEY is not configured")

        runner = PipelineRunner(unconfigured, settings, session_factory)

        with pytest.raises(ConfigurationError):
            runner.run(["collect", "aggregate", "score"], now=now)

        assert _count(session_factory, VideoSnapshot) == 0
        assert _count(session_factory, Trend) == 0

    def test_aggregate_alone_needs_no_credentials(self, settings, session_factory, store, make_snapshot, now):
        def unconfigured():
            raise ConfigurationError("YOUTUBE_API_KEY is not configured")

        store(*[make_snapshot(f"v{i}", title="drone racing") for i in range(3)])

        aggregate, = PipelineRunner(unconfigured, settings, session_factory).run(["aggregate"], now=now)

        assert aggregate.created == 2

    def test_cli_exits_with_configuration_status(self, monkeypatch, tmp_path, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)
        monkeypatch.setattr(pipeline, "setup_json_logging", lambda: None)

        assert pipeline.main(["all"]) == EXIT_CONFIGURATION_ERROR
        assert capsys.readouterr().out == ""

    def test_cli_prints_json_summary(self, monkeypatch, session_factory, capsys):
        monkeypatch.setattr(pipeline, "setup_json_logging", lambda: None)
        monkeypatch.setattr(pipeline, "PipelineRunner", lambda: PipelineRunner(session_factory=session_factory))

        assert pipeline.main(["aggregate"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["stages"][0]["stage"] == "aggregate"
        assert output["stages"][0]["status"] == "no_data"


def test_unknown_stage_rejected_before_any_work(runner, session_factory, now):
    with pytest.raises(ValueError):
        runner.run(["collect", "publish"], now=now)

    assert _count(session_factory, VideoSnapshot) == 0


def test_all_stages_return_summaries_with_json_logging(runner, capsys, now):
    """Every stage reports back when INFO logging is live"""
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    try:
        setup_json_logging(logging.INFO)
        results = runner.run(["collect", "aggregate", "score"], now=now)
        err = capsys.readouterr().err
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)

    assert [result.stage for result in results] == ["collect", "aggregate", "score"]
    assert [result.created for result in results] == [4, 3, 1]
    finished = [json.loads(line) for line in err.splitlines() if '"Stage ' in line]
    assert [line["stage"] for line in finished] == ["collect", "aggregate", "score"]
