# tests/test_results.py

"""
Results Compiler Tests - ranking order, awards, statistics, final ranking
and report payloads
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import redis

from cocoa_contest.core.exceptions import EntityNotFoundException, RoleNotPermitted
from cocoa_contest.models.common import Actor
from cocoa_contest.models.enumerations import (
    AwardLabel,
    JudgeKind,
    NotificationType,
    RankingSource,
    Role,
)
from cocoa_contest.models.evaluation import EvaluationSubmit, PaymentConfirmation
from cocoa_contest.services.results import ResultsCompiler, ScoredSample, awards_for_rank, rank_samples


T0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def scored(sample_id, score, minutes=0):
    return ScoredSample(
        sample_id=sample_id,
        contest_id="c1",
        internal_code=f"CODE-{sample_id}",
        participant_id="p1",
        score=Decimal(str(score)),
        evaluations_count=1,
        evaluated_at=T0 + timedelta(minutes=minutes),
    )


class TestRankSamples:

    def test_orders_by_score_descending(self):
        entries = rank_samples([scored("a", 7.5), scored("b", 9.1), scored("c", 8.0)])
        assert [(e.sample_id, e.rank) for e in entries] == [("b", 1), ("c", 2), ("a", 3)]

    def test_ties_go_to_earliest_evaluation_then_id(self):
        entries = rank_samples([
            scored("late", 8.0, minutes=30),
            scored("zeta", 8.0, minutes=5),
            scored("alpha", 8.0, minutes=5),
        ])
        assert [e.sample_id for e in entries] == ["alpha", "zeta", "late"]

    def test_same_input_in_any_order_gives_same_ranking(self):
        batch = [scored("a", 8.0), scored("b", 8.0), scored("c", 6.5, 2), scored("d", 9.0, 1)]
        forward = rank_samples(batch)
        backward = rank_samples(list(reversed(batch)))
        assert [e.model_dump() for e in forward] == [e.model_dump() for e in backward]

    @pytest.mark.parametrize("rank, awards", [
        (1, [AwardLabel.GOLD, AwardLabel.BEST_IN_SHOW]),
        (2, [AwardLabel.SILVER]),
        (3, [AwardLabel.BRONZE]),
        (4, []),
    ])
    def test_awards_by_rank(self, rank, awards):
        assert awards_for_rank(rank) == awards

    def test_empty(self):
        assert rank_samples([]) == []


class TestComputeRankings:

    def test_ranks_evaluated_samples(self, results, contest, evaluated_sample):
        low = evaluated_sample([6.0])
        high = evaluated_sample([9.0])
        mid = evaluated_sample([7.0, 8.0])

        ranking = results.compute_rankings(contest.id)

        assert ranking.source == RankingSource.SENSORY
        assert [e.sample_id for e in ranking.entries] == [high.id, mid.id, low.id]
        assert ranking.entries[1].overall_score == 7.5
        assert ranking.entries[1].evaluations_count == 2
        assert ranking.entries[0].awards == [AwardLabel.GOLD, AwardLabel.BEST_IN_SHOW]

    def test_partially_evaluated_and_disqualified_are_excluded(
        self, results, contest, approved_sample, evaluated_sample, assignment, lifecycle,
        director, make_judge, as_judge, sensory_attributes,
    ):
        ranked = evaluated_sample([7.0])
        partial = approved_sample()
        dropped = approved_sample()
        for sample in (partial, dropped):
            first, second = make_judge("First"), make_judge("Second")
            assignment.assign(director, sample.id, [first.id, second.id])
            lifecycle.start_evaluation(as_judge(first), sample.id)
            lifecycle.submit_evaluation(
                as_judge(first), sample.id,
                EvaluationSubmit(attributes=sensory_attributes(), overall_quality=9.5),
            )
        lifecycle.disqualify(director, dropped.id, ["Contaminated lot"])

        ranking = results.compute_rankings(contest.id)
        assert [e.sample_id for e in ranking.entries] == [ranked.id]

    def test_outlier_is_damped(self, results, contest, evaluated_sample):
        # mean 7.0; the 2.0 lies beyond 2 sigma and counts at half weight
        sample = evaluated_sample([8.0, 8.0, 8.0, 8.0, 8.0, 2.0])
        assert results.compute_rankings(contest.id).entries[0].sample_id == sample.id
        assert results.compute_rankings(contest.id).entries[0].overall_score == 7.45

    def test_plain_mean_without_filter(self, samples, evaluations, contests, settings):
        plain = ResultsCompiler(
            samples, evaluations, contests,
            settings.model_copy(update={"OUTLIER_FILTERING_ENABLED": False}),
            cache_getter=lambda: None,
        )
        assert plain.sample_score([("a", 8.0), ("b", 8.0), ("c", 8.0), ("d", 2.0)]) == Decimal("6.50")

    def test_unknown_contest(self, results):
        with pytest.raises(EntityNotFoundException):
            results.compute_rankings("missing")

    def test_top_n(self, results, contest, evaluated_sample):
        first = evaluated_sample([9.0])
        second = evaluated_sample([8.0])
        evaluated_sample([7.0])
        assert results.top_n(contest.id, 2) == [first.id, second.id]


class TestRankingCache:

    def compiler(self, samples, evaluations, contests, settings, cache):
        return ResultsCompiler(samples, evaluations, contests, settings, cache_getter=lambda: cache)

    def test_cache_hit_is_returned(self, samples, evaluations, contests, settings, contest, results):
        cached = results.compute_rankings(contest.id)
        cache = MagicMock()
        cache.get.return_value = cached

        response = self.compiler(samples, evaluations, contests, settings, cache).compute_rankings(contest.id)

        assert response is cached
        cache.set.assert_not_called()

    def test_miss_is_stored(self, samples, evaluations, contests, settings, contest):
        cache = MagicMock()
        cache.get.return_value = None

        self.compiler(samples, evaluations, contests, settings, cache).compute_rankings(contest.id)

        key, _, ttl = cache.set.call_args.args
        assert key == f"rankings:{contest.id}:sensory"
        assert ttl == settings.CACHE_TTL_RANKINGS

    def test_redis_errors_fall_back_to_computing(self, samples, evaluations, contests, settings,
                                                 contest, evaluated_sample):
        sample = evaluated_sample([8.0])
        cache = MagicMock()
        cache.get.side_effect = redis.ConnectionError("down")
        cache.set.side_effect = redis.ConnectionError("down")

        response = self.compiler(samples, evaluations, contests, settings, cache).compute_rankings(contest.id)

        assert [e.sample_id for e in response.entries] == [sample.id]

    def test_invalidate_deletes_contest_keys(self, samples, evaluations, contests, settings):
        cache = MagicMock()
        self.compiler(samples, evaluations, contests, settings, cache).invalidate("c1")
        cache.delete_pattern.assert_called_once_with("rankings:c1:*")


class TestStats:

    def test_contest_stats(self, results, contest, evaluated_sample, draft_sample):
        for score in (9.5, 8.0, 6.0, 7.0):
            evaluated_sample([score])
        draft_sample()

        stats = results.contest_stats(contest.id)

        assert stats.total_samples == 5
        assert stats.evaluated_samples == 4
        assert stats.average_score == 7.6
        assert stats.best_score == 9.5
        # three medals plus one excellence mark
        assert stats.total_awards == 4

    def test_participant_stats_only_count_own_samples(self, results, contest, evaluated_sample):
        other = Actor(user_id="participant-2", role=Role.PARTICIPANT)
        evaluated_sample([9.0], owner=other)
        evaluated_sample([6.0])

        stats = results.participant_stats("participant-1")

        assert stats.scope == "participant"
        assert stats.total_samples == 1
        assert stats.best_score == 6.0
        assert stats.total_awards == 1

    def test_empty_contest(self, results, contest):
        stats = results.contest_stats(contest.id)
        assert stats.evaluated_samples == 0
        assert stats.average_score == 0.0


class TestFinalRanking:

    def final_evaluate(self, final, as_evaluator, evaluator, sample, score, key, fee, attributes):
        actor = as_evaluator(evaluator)
        final.confirm_payment(actor, sample.id, PaymentConfirmation(amount=fee, idempotency_key=key))
        final.start(actor, sample.id)
        final.submit(actor, sample.id, EvaluationSubmit(attributes=attributes, overall_quality=score))

    def test_publish_notifies_top_three(
        self, results, stage, final, contest, director, evaluated_sample, make_judge, as_evaluator,
        sensory_attributes,
    ):
        batch = [evaluated_sample([s]) for s in (9.0, 8.5, 8.0, 7.5)]
        stage.start_final_evaluation(director, contest.id)
        evaluator = make_judge("Eva", kind=JudgeKind.EVALUATOR)
        for i, (sample, score) in enumerate(zip(batch, (7.0, 9.0, 8.0, 6.0))):
            self.final_evaluate(final, as_evaluator, evaluator, sample, score, f"key-{i}",
                                contest.evaluation_fee, sensory_attributes())

        ranking, effects = results.publish_final_ranking(director, contest.id)

        assert ranking.source == RankingSource.FINAL
        assert [e.sample_id for e in ranking.entries] == [batch[1].id, batch[2].id, batch[0].id, batch[3].id]
        assert [e.type for e in effects] == [NotificationType.FINAL_RANKING_TOP3] * 3
        assert [e.sample_id for e in effects] == [batch[1].id, batch[2].id, batch[0].id]
        assert effects[0].title == "Congratulations! Your sample ranked 1"

    def test_staff_only(self, results, contest, participant):
        with pytest.raises(RoleNotPermitted):
            results.publish_final_ranking(participant, contest.id)

    def test_nothing_to_publish(self, results, contest, director, evaluated_sample):
        evaluated_sample([9.0])
        ranking, effects = results.publish_final_ranking(director, contest.id)
        assert ranking.entries == []
        assert effects == []


class TestReport:

    def test_report_payload(self, results, contest, evaluated_sample):
        sample = evaluated_sample([8.0, 9.0])

        report = results.report_payload(sample.id)

        assert report.internal_code == sample.internal_code
        assert report.contest_name == contest.name
        assert report.category == "bean"
        assert report.ranking.rank == 1
        assert report.ranking.overall_score == 8.5
        assert report.physical_evaluation["verdict"] == "passed"
        assert len(report.evaluations) == 2

    def test_unranked_sample_has_no_ranking(self, results, approved_sample):
        report = results.report_payload(approved_sample().id)
        assert report.ranking is None
        assert report.evaluations == []
