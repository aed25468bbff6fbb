"""
Results Compiler - Cocoa Contest Evaluation Engine
cocoa_contest/services/results.py

Rankings, awards and statistics computed over evaluated samples. Rankings
are a view: they are recomputed (or read from the optional Redis cache)
and never stored as ground truth.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import redis
import structlog

from cocoa_contest.config import Settings, get_settings
from cocoa_contest.core.exceptions import RoleNotPermitted
from cocoa_contest.models.common import Actor, utc_now
from cocoa_contest.models.enumerations import AwardLabel, JudgeKind, RankingSource, SampleStatus
from cocoa_contest.models.ranking import RankingEntry, RankingResponse, ResultsStats, SampleReport
from cocoa_contest.models.sample import Sample
from cocoa_contest.repositories.contest_repository import ContestRepository
from cocoa_contest.repositories.evaluation_repository import EvaluationRepository
from cocoa_contest.repositories.sample_repository import SampleRepository
from cocoa_contest.scoring.outlier_filter import OutlierConfig, OutlierFilter
from cocoa_contest.scoring.utils import TWO_PLACES, mean, round_to, to_decimal
from cocoa_contest.services import notifications
from cocoa_contest.services.cache import get_cache
from cocoa_contest.services.notifications import Effect
from cocoa_contest.services.redis_cache import RedisCache, ranking_key, ranking_pattern

logger = structlog.get_logger(__name__)

_AWARDS: Dict[int, List[AwardLabel]] = {
    1: [AwardLabel.GOLD, AwardLabel.BEST_IN_SHOW],
    2: [AwardLabel.SILVER],
    3: [AwardLabel.BRONZE],
}

MEDAL_RANKS = 3


def awards_for_rank(rank: int) -> List[AwardLabel]:
    return list(_AWARDS.get(rank, []))


@dataclass(frozen=True)
class ScoredSample:
    sample_id: str
    contest_id: str
    internal_code: str
    participant_id: str
    score: Decimal
    evaluations_count: int
    evaluated_at: datetime


def rank_samples(scored: Iterable[ScoredSample]) -> List[RankingEntry]:
    """
    Order by score descending, then earliest evaluation, then sample id.

    The total order makes the ranking identical for identical inputs,
    whatever order the samples arrive in.
    """
    ordered = sorted(scored, key=lambda s: (-s.score, s.evaluated_at, s.sample_id))
    return [
        RankingEntry(
            sample_id=s.sample_id,
            contest_id=s.contest_id,
            internal_code=s.internal_code,
            participant_id=s.participant_id,
            overall_score=float(s.score),
            rank=position,
            awards=awards_for_rank(position),
            evaluations_count=s.evaluations_count,
            evaluated_at=s.evaluated_at,
        )
        for position, s in enumerate(ordered, start=1)
    ]


class ResultsCompiler:
    """Compile rankings, awards, statistics and report payloads."""

    def __init__(
        self,
        samples: SampleRepository,
        evaluations: EvaluationRepository,
        contests: ContestRepository,
        settings: Optional[Settings] = None,
        cache_getter: Callable[[], Optional[RedisCache]] = get_cache,
    ):
        self.samples = samples
        self.evaluations = evaluations
        self.contests = contests
        self.settings = settings or get_settings()
        self.cache_getter = cache_getter
        outlier_config = self.settings.outlier_config
        self.outlier_filter = OutlierFilter(OutlierConfig(**outlier_config)) if outlier_config else None

    # ------------------------------------------------------------------
    # Scores and rankings
    # ------------------------------------------------------------------

    def sample_score(self, scores: List[Tuple[Optional[str], float]]) -> Decimal:
        """Mean overall quality, outlier-filtered when enabled, to 2 decimals."""
        if self.outlier_filter is not None:
            value = self.outlier_filter.filter(scores).filtered_average
        else:
            value = mean([to_decimal(s) for _, s in scores])
        return round_to(value, TWO_PLACES)

    def _scored_samples(self, contest_id: str, source: RankingSource) -> List[ScoredSample]:
        kind = JudgeKind.JUDGE if source == RankingSource.SENSORY else JudgeKind.EVALUATOR
        by_sample: Dict[str, list] = {}
        for record in self.evaluations.list_for_contest(contest_id, kind):
            by_sample.setdefault(record.sample_id, []).append(record)

        scored: List[ScoredSample] = []
        for sample in self.samples.list_by_contest(contest_id):
            records = by_sample.get(sample.id)
            if not records or sample.status == SampleStatus.DISQUALIFIED:
                continue
            if source == RankingSource.SENSORY:
                if sample.status != SampleStatus.EVALUATED:
                    continue
                evaluated_at = sample.evaluated_at or max(r.submitted_at for r in records)
            else:
                evaluated_at = max(r.submitted_at for r in records)
            scored.append(ScoredSample(
                sample_id=sample.id,
                contest_id=contest_id,
                internal_code=sample.internal_code,
                participant_id=sample.participant_id,
                score=self.sample_score([(r.id, r.overall_quality) for r in records]),
                evaluations_count=len(records),
                evaluated_at=evaluated_at,
            ))
        return scored

    def compute_rankings(
        self,
        contest_id: str,
        source: RankingSource = RankingSource.SENSORY,
        use_cache: bool = True,
    ) -> RankingResponse:
        self.contests.require(contest_id)
        key = ranking_key(contest_id, source.value)

        cache = self.cache_getter() if use_cache else None
        if cache is not None:
            try:
                cached = cache.get(key, RankingResponse)
            except redis.RedisError as e:
                logger.warning("ranking_cache_read_failed", contest_id=contest_id, error=str(e))
                cached = None
            if cached is not None:
                return cached

        response = RankingResponse(
            contest_id=contest_id,
            source=source,
            entries=rank_samples(self._scored_samples(contest_id, source)),
            computed_at=utc_now(),
        )

        if cache is not None:
            try:
                cache.set(key, response, self.settings.CACHE_TTL_RANKINGS)
            except redis.RedisError as e:
                logger.warning("ranking_cache_write_failed", contest_id=contest_id, error=str(e))

        logger.info("rankings_computed", contest_id=contest_id, source=source.value, entries=len(response.entries))
        return response

    def top_n(self, contest_id: str, n: int) -> List[str]:
        """Sample ids of the top n in the sensory ranking."""
        entries = self.compute_rankings(contest_id, RankingSource.SENSORY).entries
        return [e.sample_id for e in entries[:n]]

    def invalidate(self, contest_id: str) -> None:
        cache = self.cache_getter()
        if cache is None:
            return
        try:
            removed = cache.delete_pattern(ranking_pattern(contest_id))
            logger.debug("rankings_invalidated", contest_id=contest_id, removed=removed)
        except redis.RedisError as e:
            logger.warning("ranking_cache_invalidate_failed", contest_id=contest_id, error=str(e))

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _stats(self, scope: str, scope_id: str, samples: List[Sample],
               entries: List[RankingEntry]) -> ResultsStats:
        scores = [to_decimal(e.overall_score) for e in entries]
        threshold = to_decimal(self.settings.EXCELLENCE_THRESHOLD)
        medals = sum(1 for e in entries if e.rank <= MEDAL_RANKS)
        excellent = sum(1 for s in scores if s >= threshold)
        return ResultsStats(
            scope=scope,
            scope_id=scope_id,
            total_samples=len(samples),
            evaluated_samples=len(entries),
            average_score=float(round_to(mean(scores))) if scores else 0.0,
            best_score=float(round_to(max(scores))) if scores else 0.0,
            total_awards=medals + excellent,
        )

    def contest_stats(self, contest_id: str) -> ResultsStats:
        samples = self.samples.list_by_contest(contest_id)
        entries = self.compute_rankings(contest_id).entries
        return self._stats("contest", contest_id, samples, entries)

    def participant_stats(self, participant_id: str) -> ResultsStats:
        samples = self.samples.list_by_participant(participant_id)
        entries: List[RankingEntry] = []
        for contest_id in sorted({s.contest_id for s in samples}):
            entries.extend(
                e for e in self.compute_rankings(contest_id).entries
                if e.participant_id == participant_id
            )
        return self._stats("participant", participant_id, samples, entries)

    # ------------------------------------------------------------------
    # Publishing and reports
    # ------------------------------------------------------------------

    def publish_final_ranking(self, actor: Actor, contest_id: str) -> Tuple[RankingResponse, List[Effect]]:
        """Final ranking from evaluator scores; the top three owners are notified."""
        if not actor.is_staff:
            raise RoleNotPermitted(actor.role.value, "publish_final_ranking")
        ranking = self.compute_rankings(contest_id, RankingSource.FINAL, use_cache=False)
        effects: List[Effect] = [
            notifications.final_ranking_top3(
                entry.participant_id, entry.sample_id, contest_id, entry.rank, entry.overall_score
            )
            for entry in ranking.entries[:MEDAL_RANKS]
        ]
        logger.info("final_ranking_published", contest_id=contest_id, entries=len(ranking.entries))
        return ranking, effects

    def report_payload(self, sample_id: str) -> SampleReport:
        sample = self.samples.require(sample_id)
        contest = self.contests.require(sample.contest_id)
        ranking = next(
            (e for e in self.compute_rankings(contest.id).entries if e.sample_id == sample_id),
            None,
        )
        return SampleReport(
            sample_id=sample.id,
            internal_code=sample.internal_code,
            tracking_code=sample.tracking_code,
            contest_id=contest.id,
            contest_name=contest.name,
            category=sample.category.value,
            participant_id=sample.participant_id,
            ranking=ranking,
            physical_evaluation=(
                sample.physical_evaluation.model_dump(mode="json") if sample.physical_evaluation else None
            ),
            evaluations=[r.model_dump(mode="json") for r in self.evaluations.list_for_sample(sample_id)],
        )
