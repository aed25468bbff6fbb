# tests/test_lifecycle.py

"""
Sample Lifecycle Tests - transitions, guards, concurrency and derived status
"""

import pytest
from datetime import timedelta

from cocoa_contest.core.exceptions import (
    DuplicateEvaluation,
    EntityNotFoundException,
    InvalidTransition,
    RoleNotPermitted,
    StaleWrite,
)
from cocoa_contest.models.contest import ContestCreate
from cocoa_contest.models.enumerations import NotificationType, ProductCategory, SampleStatus
from cocoa_contest.models.evaluation import EvaluationSubmit
from cocoa_contest.models.sample import SampleUpdate
from cocoa_contest.services.lifecycle import derive_status
from cocoa_contest.services.notifications import InvalidateRankings, Notify


def submission(attributes, quality=7.5, **extra):
    return EvaluationSubmit(attributes=attributes, overall_quality=quality, **extra)


class TestIntake:

    def test_draft_gets_internal_code(self, draft_sample, participant):
        sample = draft_sample()
        assert sample.status == SampleStatus.DRAFT
        assert sample.participant_id == participant.user_id
        assert sample.internal_code.startswith("INT-")
        assert sample.tracking_code is None

    def test_only_participants_create_samples(self, lifecycle, director, contest):
        from cocoa_contest.models.sample import SampleCreate
        with pytest.raises(RoleNotPermitted):
            lifecycle.create_draft(director, SampleCreate(contest_id=contest.id, category=ProductCategory.BEAN))

    def test_unknown_contest(self, lifecycle, participant):
        from cocoa_contest.models.sample import SampleCreate
        with pytest.raises(EntityNotFoundException):
            lifecycle.create_draft(participant, SampleCreate(contest_id="nope", category=ProductCategory.BEAN))

    def test_submit_assigns_tracking_code_and_notifies_director(self, lifecycle, draft_sample, participant, director):
        result = lifecycle.submit(participant, draft_sample().id)
        assert result.sample.status == SampleStatus.SUBMITTED
        assert result.sample.tracking_code.startswith("CC-")
        assert [e.recipient_id for e in result.effects] == [director.user_id]
        assert result.effects[0].type == NotificationType.SAMPLE_ADDED

    def test_submit_requires_terms(self, lifecycle, draft_sample, participant):
        sample = draft_sample()
        lifecycle.update_draft(participant, sample.id, SampleUpdate(agreed_to_terms=False))
        with pytest.raises(InvalidTransition):
            lifecycle.submit(participant, sample.id)

    def test_submit_after_deadline(self, lifecycle, stage, director, participant, today):
        from cocoa_contest.models.sample import SampleCreate
        closed = stage.create_contest(director, ContestCreate(
            name="Closed intake",
            start_date=today - timedelta(days=10),
            end_date=today + timedelta(days=10),
            submission_deadline=today - timedelta(days=1),
        ))
        sample = lifecycle.create_draft(participant, SampleCreate(
            contest_id=closed.id, category=ProductCategory.BEAN,
            farm_name="Finca", origin_country="Peru", agreed_to_terms=True,
        ))
        with pytest.raises(InvalidTransition):
            lifecycle.submit(participant, sample.id, today)

    def test_only_owner_submits(self, lifecycle, draft_sample):
        from cocoa_contest.models.common import Actor
        from cocoa_contest.models.enumerations import Role
        other = Actor(user_id="participant-2", role=Role.PARTICIPANT)
        with pytest.raises(RoleNotPermitted):
            lifecycle.submit(other, draft_sample().id)

    def test_update_only_while_draft(self, lifecycle, draft_sample, participant):
        sample = draft_sample()
        updated = lifecycle.update_draft(participant, sample.id, SampleUpdate(farm_name="El Cedro"))
        assert updated.farm_name == "El Cedro"
        lifecycle.submit(participant, sample.id)
        with pytest.raises(InvalidTransition):
            lifecycle.update_draft(participant, sample.id, SampleUpdate(farm_name="Late edit"))

    def test_receive_requires_submitted(self, lifecycle, draft_sample, director):
        with pytest.raises(InvalidTransition):
            lifecycle.receive(director, draft_sample().id)

    def test_receive_is_staff_only(self, lifecycle, draft_sample, participant):
        sample = draft_sample()
        lifecycle.submit(participant, sample.id)
        with pytest.raises(RoleNotPermitted):
            lifecycle.receive(participant, sample.id)


class TestWithdraw:

    def test_withdraw_draft_and_submitted(self, lifecycle, draft_sample, participant, samples):
        draft = draft_sample()
        submitted = draft_sample()
        lifecycle.submit(participant, submitted.id)

        lifecycle.withdraw(participant, draft.id)
        lifecycle.withdraw(participant, submitted.id)

        assert not samples.exists(draft.id)
        assert not samples.exists(submitted.id)

    def test_cannot_withdraw_after_reception(self, lifecycle, draft_sample, participant, director):
        sample = draft_sample()
        lifecycle.submit(participant, sample.id)
        lifecycle.receive(director, sample.id)
        with pytest.raises(InvalidTransition):
            lifecycle.withdraw(participant, sample.id)


class TestPhysicalEvaluation:

    def test_passing_inspection(self, lifecycle, draft_sample, participant, director, physical_data):
        sample = draft_sample()
        lifecycle.submit(participant, sample.id)
        lifecycle.receive(director, sample.id)
        result = lifecycle.record_physical_evaluation(director, sample.id, physical_data())
        assert result.sample.status == SampleStatus.PHYSICAL_EVALUATION
        assert result.sample.physical_evaluation.passed

    def test_failing_inspection_disqualifies_immediately(
        self, lifecycle, draft_sample, participant, director, physical_data
    ):
        sample = draft_sample()
        lifecycle.submit(participant, sample.id)
        lifecycle.receive(director, sample.id)
        result = lifecycle.record_physical_evaluation(
            director, sample.id, physical_data(percentage_humidity=12.0, notes="Wet lot")
        )
        assert result.sample.status == SampleStatus.DISQUALIFIED
        assert result.sample.disqualification_reasons == [
            "Humidity (12%) outside acceptable range (3.5%-8.0%)"
        ]
        notify = next(e for e in result.effects if isinstance(e, Notify))
        assert notify.type == NotificationType.SAMPLE_DISQUALIFIED
        assert notify.details == "Wet lot"

    def test_reinspection_before_approval(self, lifecycle, draft_sample, participant, director, physical_data):
        sample = draft_sample()
        lifecycle.submit(participant, sample.id)
        lifecycle.receive(director, sample.id)
        lifecycle.record_physical_evaluation(director, sample.id, physical_data(flat_grains=20.0))
        result = lifecycle.record_physical_evaluation(director, sample.id, physical_data())
        assert result.sample.physical_evaluation.warnings == []

    def test_approve_requires_physical_evaluation(self, lifecycle, draft_sample, participant, director):
        sample = draft_sample()
        lifecycle.submit(participant, sample.id)
        lifecycle.receive(director, sample.id)
        with pytest.raises(InvalidTransition):
            lifecycle.approve(director, sample.id)


class TestDisqualify:

    def test_disqualify_requires_reason(self, lifecycle, approved_sample, director, samples):
        sample = approved_sample()
        with pytest.raises(InvalidTransition) as exc:
            lifecycle.disqualify(director, sample.id, ["  "])
        assert exc.value.details["reason"] == "at least one disqualification reason is required"
        assert samples.require(sample.id).status == SampleStatus.APPROVED

    def test_disqualify_releases_pending_judges(
        self, lifecycle, approved_sample, assignment, make_judge, director, judges
    ):
        sample = approved_sample()
        a, b = make_judge("A"), make_judge("B")
        assignment.assign(director, sample.id, [a.id, b.id])

        result = lifecycle.disqualify(director, sample.id, ["Contaminated"])

        assert result.sample.status == SampleStatus.DISQUALIFIED
        assert result.sample.disqualification_reasons == ["Contaminated"]
        assert judges.require(a.id).current_assignments == 0
        assert judges.require(b.id).current_assignments == 0
        assert InvalidateRankings(sample.contest_id) in result.effects

    def test_draft_cannot_be_disqualified(self, lifecycle, draft_sample, director):
        with pytest.raises(InvalidTransition):
            lifecycle.disqualify(director, draft_sample().id, ["Late"])

    def test_disqualified_is_terminal(self, lifecycle, approved_sample, director):
        sample = approved_sample()
        lifecycle.disqualify(director, sample.id, ["Contaminated"])
        with pytest.raises(InvalidTransition):
            lifecycle.disqualify(director, sample.id, ["Again"])

    def test_concurrent_approve_and_disqualify(
        self, lifecycle, draft_sample, participant, director, physical_data, samples
    ):
        sample = draft_sample()
        lifecycle.submit(participant, sample.id)
        lifecycle.receive(director, sample.id)
        lifecycle.record_physical_evaluation(director, sample.id, physical_data())

        # Both transitions read the same snapshot; the second writer loses
        snapshot = samples.require(sample.id)
        lifecycle.disqualify(director, sample.id, ["Mislabelled"])
        with pytest.raises(StaleWrite):
            samples.update(snapshot.model_copy(update={"status": SampleStatus.APPROVED}))

        assert samples.require(sample.id).status == SampleStatus.DISQUALIFIED


class TestSensoryEvaluation:

    @pytest.fixture
    def assigned(self, approved_sample, assignment, make_judge, director):
        sample = approved_sample()
        panel = [make_judge("Ana"), make_judge("Luis")]
        assignment.assign(director, sample.id, [j.id for j in panel])
        return sample, panel

    def test_start_is_idempotent(self, lifecycle, assigned, as_judge):
        sample, (ana, luis) = assigned
        first = lifecycle.start_evaluation(as_judge(ana), sample.id)
        second = lifecycle.start_evaluation(as_judge(luis), sample.id)
        assert first.sample.status == SampleStatus.EVALUATING
        assert second.sample.status == SampleStatus.EVALUATING
        assert not second.changed
        assert second.sample.version == first.sample.version

    def test_unassigned_judge_cannot_start(self, lifecycle, assigned, make_judge, as_judge):
        sample, _ = assigned
        with pytest.raises(InvalidTransition):
            lifecycle.start_evaluation(as_judge(make_judge("Outsider")), sample.id)

    def test_submit_before_start(self, lifecycle, assigned, as_judge, sensory_attributes):
        sample, (ana, _) = assigned
        with pytest.raises(InvalidTransition):
            lifecycle.submit_evaluation(as_judge(ana), sample.id, submission(sensory_attributes()))

    def test_partial_then_full_evaluation(
        self, lifecycle, assigned, as_judge, sensory_attributes, judges, director, participant
    ):
        sample, (ana, luis) = assigned
        lifecycle.start_evaluation(as_judge(ana), sample.id)

        first = lifecycle.submit_evaluation(as_judge(ana), sample.id, submission(sensory_attributes(), 8.0))
        assert first.sample.status == SampleStatus.EVALUATING
        assert first.sample.evaluated_at is None
        assert judges.require(ana.id).current_assignments == 0
        assert judges.require(luis.id).current_assignments == 1
        recipients = {e.recipient_id for e in first.effects if isinstance(e, Notify)}
        assert recipients == {director.user_id, participant.user_id}

        second = lifecycle.submit_evaluation(as_judge(luis), sample.id, submission(sensory_attributes(), 7.0))
        assert second.sample.status == SampleStatus.EVALUATED
        assert second.sample.evaluated_at is not None
        assert set(second.sample.sensory_evaluations) == {ana.id, luis.id}

    def test_record_holds_aggregated_tree(self, lifecycle, assigned, as_judge, sensory_attributes):
        sample, (ana, _) = assigned
        lifecycle.start_evaluation(as_judge(ana), sample.id)
        record = lifecycle.submit_evaluation(
            as_judge(ana), sample.id, submission(sensory_attributes(2.0))
        ).evaluation
        assert record.attributes["acidity"]["total"] == 8.0
        assert len(record.radar) == 14
        assert record.missing_attributes == []

    def test_duplicate_submission(self, lifecycle, assigned, as_judge, sensory_attributes, samples):
        sample, (ana, _) = assigned
        lifecycle.start_evaluation(as_judge(ana), sample.id)
        lifecycle.submit_evaluation(as_judge(ana), sample.id, submission(sensory_attributes()))
        before = samples.require(sample.id)

        with pytest.raises(DuplicateEvaluation):
            lifecycle.submit_evaluation(as_judge(ana), sample.id, submission(sensory_attributes()))

        after = samples.require(sample.id)
        assert after.status == SampleStatus.EVALUATING
        assert after.version == before.version

    def test_submission_to_evaluated_sample(self, lifecycle, evaluated_sample, make_judge, as_judge, sensory_attributes):
        sample = evaluated_sample([8.0])
        with pytest.raises(InvalidTransition):
            lifecycle.submit_evaluation(as_judge(make_judge("Late")), sample.id, submission(sensory_attributes()))

    def test_invalid_intensity_writes_nothing(self, lifecycle, assigned, as_judge, sensory_attributes, evaluations):
        sample, (ana, _) = assigned
        lifecycle.start_evaluation(as_judge(ana), sample.id)
        attributes = sensory_attributes()
        attributes["cacao"] = 11
        with pytest.raises(ValueError):
            lifecycle.submit_evaluation(as_judge(ana), sample.id, submission(attributes))
        assert evaluations.list_for_sample(sample.id) == []

    def test_chocolate_scores_recorded(
        self, lifecycle, approved_sample, assignment, make_judge, director, as_judge, sensory_attributes
    ):
        from cocoa_contest.scoring.chocolate_calculator import SCORED_ATTRIBUTES
        sample = approved_sample(category=ProductCategory.CHOCOLATE)
        judge = make_judge("Choco")
        assignment.assign(director, sample.id, [judge.id])
        lifecycle.start_evaluation(as_judge(judge), sample.id)
        chocolate = {c: {a: 6.0 for a in names} for c, names in SCORED_ATTRIBUTES.items()}
        record = lifecycle.submit_evaluation(
            as_judge(judge), sample.id, submission(sensory_attributes(), chocolate=chocolate)
        ).evaluation
        assert record.chocolate_scores["weighted_score"] == 6.0


class TestDeriveStatus:

    @pytest.mark.parametrize("has_assignments, in_progress, all_submitted, expected", [
        (True, True, True, SampleStatus.EVALUATED),
        (True, True, False, SampleStatus.EVALUATING),
        (True, False, False, SampleStatus.ASSIGNED),
        (False, False, False, SampleStatus.APPROVED),
    ])
    def test_precedence_after_approval(self, has_assignments, in_progress, all_submitted, expected):
        assert derive_status(SampleStatus.APPROVED, has_assignments, in_progress, all_submitted) == expected

    @pytest.mark.parametrize("stored", [
        SampleStatus.DRAFT, SampleStatus.RECEIVED, SampleStatus.DISQUALIFIED,
    ])
    def test_stored_status_kept_outside_evaluation(self, stored):
        assert derive_status(stored, True, True, True) == stored
