#!/usr/bin/env python3
"""Trigger surface: run collect, aggregate and score stages on demand"""
import sys
import logging
import argparse
import json
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from core.config import PipelineSettings
from core.db import SessionLocal
from core.errors import ConfigurationError
from core.logging import setup_json_logging
from core.pipeline import StageResult, new_trace_id
from collection.clients.provider import VideoMetadataProvider
from collection.clients.youtube import YouTubeClient
from collection.jobs.candidate_selector import CandidateSelector
from collection.jobs.snapshot_collector import SnapshotCollector
from analysis.jobs.trend_aggregator import TrendAggregator
from analysis.jobs.gap_scorer import GapScorer

logger = logging.getLogger(__name__)

STAGES = ("collect", "aggregate", "score")
EXIT_CONFIGURATION_ERROR = 2


class PipelineRunner:
    """Runs stages in order; per-item failures are counted, never raised"""

    def __init__(
        self,
        provider_factory: Callable[[], VideoMetadataProvider] = YouTubeClient,
        settings: Optional[PipelineSettings] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.provider_factory = provider_factory
        self.settings = settings or PipelineSettings()
        self.session_factory = session_factory
        self._provider: Optional[VideoMetadataProvider] = None

    @property
    def provider(self) -> VideoMetadataProvider:
        # Built lazily so `aggregate` never needs provider credentials
        if self._provider is None:
            self._provider = self.provider_factory()
        return self._provider

    def close(self) -> None:
        if self._provider is not None:
            self._provider.close()
            self._provider = None

    def run(self, stages: List[str], now: Optional[datetime] = None, dry_run: bool = False) -> List[StageResult]:
        now = now or datetime.now(timezone.utc)
        trace_id = new_trace_id("pipeline", now)

        unknown = [stage for stage in stages if stage not in STAGES]
        if unknown:
            raise ValueError(f"Unknown stage: {unknown[0]}")

        # Resolve credentials up front so a misconfigured run writes nothing
        if any(stage in ("collect", "score") for stage in stages):
            self.provider.check()

        results = []
        for stage in stages:
            stage_trace = f"{trace_id}_{stage}"
            started = time.perf_counter()
            if stage == "collect":
                result = self.collect(now, stage_trace, dry_run)
            elif stage == "aggregate":
                result = self.aggregate(now, stage_trace)
            else:
                result = self.score(now, stage_trace)

            logger.info(f"Stage {stage} finished", extra={
                "trace_id": stage_trace,
                "stage": stage,
                "status": result.status,
                "latency_ms": round((time.perf_counter() - started) * 1000, 1)
            })
            results.append(result)
        return results

    def collect(self, now: datetime, trace_id: str, dry_run: bool = False) -> StageResult:
        selector = CandidateSelector(self.provider, self.settings, self.session_factory)
        selection = selector.select(now=now, trace_id=trace_id)

        collector = SnapshotCollector(self.provider, self.settings, self.session_factory)
        result = collector.collect(selection.video_ids, now=now, dry_run=dry_run, trace_id=trace_id)
        result.errors += selection.errors
        return result

    def aggregate(self, now: datetime, trace_id: str) -> StageResult:
        return TrendAggregator(self.settings, self.session_factory).aggregate(now=now, trace_id=trace_id)

    def score(self, now: datetime, trace_id: str) -> StageResult:
        return GapScorer(self.provider, self.settings, self.session_factory).score(now=now, trace_id=trace_id)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run trend and content-gap pipeline stages")
    parser.add_argument("stage", choices=[*STAGES, "all"], help="Stage to run (all = collect, aggregate, score)")
    parser.add_argument("--dry-run", action="store_true", help="Collect without writing snapshots")
    parser.add_argument("--out-file", help="Output file path (optional)")

    args = parser.parse_args(argv)

    setup_json_logging()

    stages = list(STAGES) if args.stage == "all" else [args.stage]

    runner = PipelineRunner()
    try:
        results = runner.run(stages, dry_run=args.dry_run)
    except ConfigurationError as e:
        logger.error(f"Run aborted: {e.message}", extra={"trace_id": "pipeline_config"})
        return EXIT_CONFIGURATION_ERROR
    finally:
        runner.close()

    output_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stages": [result.model_dump() for result in results]
    }
    json_output = json.dumps(output_data, indent=2, ensure_ascii=False)

    if args.out_file:
        with open(args.out_file, 'w', encoding='utf-8') as f:
            f.write(json_output)
        print(f"Results saved to {args.out_file}")
    else:
        print(json_output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
