from enum import Enum

class SampleStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    RECEIVED = "received"
    PHYSICAL_EVALUATION = "physical_evaluation"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    EVALUATING = "evaluating"
    EVALUATED = "evaluated"
    DISQUALIFIED = "disqualified"

class ProductCategory(str, Enum):
    BEAN = "bean"
    LIQUOR = "liquor"
    CHOCOLATE = "chocolate"

class Role(str, Enum):
    ADMIN = "admin"
    DIRECTOR = "director"
    JUDGE = "judge"
    PARTICIPANT = "participant"
    EVALUATOR = "evaluator"

class JudgeKind(str, Enum):
    JUDGE = "judge"          # Sensory evaluation during the main contest
    EVALUATOR = "evaluator"  # Paid, top-N final evaluation

class ContestStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"

class ContestStage(str, Enum):
    OPEN = "open"
    ACTIVE = "active"
    FINAL_EVALUATION = "final_evaluation"
    COMPLETED = "completed"

class PhysicalVerdict(str, Enum):
    PASSED = "passed"
    DISQUALIFIED = "disqualified"

class NotificationType(str, Enum):
    SAMPLE_ADDED = "sample_added"
    SAMPLE_RECEIVED = "sample_received"
    SAMPLE_DISQUALIFIED = "sample_disqualified"
    SAMPLE_APPROVED = "sample_approved"
    SAMPLE_ASSIGNED_TO_JUDGE = "sample_assigned_to_judge"
    JUDGE_EVALUATED_SAMPLE = "judge_evaluated_sample"
    EVALUATOR_EVALUATED_SAMPLE = "evaluator_evaluated_sample"
    CONTEST_FINAL_STAGE = "contest_final_stage"
    FINAL_RANKING_TOP3 = "final_ranking_top3"

class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

class AwardLabel(str, Enum):
    GOLD = "Gold Medal"
    SILVER = "Silver Medal"
    BRONZE = "Bronze Medal"
    BEST_IN_SHOW = "Best in Show"

class RankingSource(str, Enum):
    SENSORY = "sensory"  # Judge evaluations
    FINAL = "final"      # Evaluator final-stage evaluations
