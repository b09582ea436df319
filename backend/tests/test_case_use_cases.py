from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from caseflow.auth import Actor
from caseflow.domain_errors import (
    ConfigurationMissingError,
    DomainError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from caseflow.models import (
    Agreement,
    BargainingUnit,
    Case,
    CaseEvent,
    CaseReport,
    CaseStep,
    Complaint,
    Evidence,
    StepOutcome,
    User,
)
from caseflow.schemas import CaseCreate, Grievor
from caseflow.services import search_indexing
from caseflow.services.step_templates import ResolvedStep
from caseflow.use_cases import case_lifecycle, case_steps, case_updates


class _QueryStub:
    def __init__(self, session, entities, first_result=None):
        self._session = session
        self._entities = entities
        self._first_result = first_result

    def filter(self, *_args, **_kwargs):
        return self

    def join(self, *_args, **_kwargs):
        return self

    def with_for_update(self, *_args, **_kwargs):
        self._session.locked.append(self._entities[0])
        return self

    def first(self):
        return self._first_result

    def delete(self, synchronize_session=None):
        self._session.bulk_deleted.append(self._entities[0])
        return 1

    def update(self, values, synchronize_session=None):
        self._session.bulk_updated.append((self._entities[0], values))
        return 1


class _SessionStub:
    def __init__(self, *, firsts=None, fail_commit=False):
        self._firsts = firsts or {}
        self._fail_commit = fail_commit
        self.added = []
        self.deleted = []
        self.bulk_deleted = []
        self.bulk_updated = []
        self.locked = []
        self.commit_calls = 0
        self.rollback_calls = 0
        self.flush_calls = 0

    def query(self, *entities):
        if entities not in self._firsts:
            raise AssertionError(f"Unexpected query entities: {entities}")
        return _QueryStub(self, entities, self._firsts[entities])

    def add(self, obj):
        self.added.append(obj)

    def delete(self, obj):
        self.deleted.append(obj)

    def flush(self):
        self.flush_calls += 1

    def commit(self):
        self.commit_calls += 1
        if self._fail_commit:
            raise OperationalError("COMMIT", {}, Exception("connection reset"))

    def rollback(self):
        self.rollback_calls += 1

    def events(self):
        return [item for item in self.added if isinstance(item, CaseEvent)]


@pytest.fixture(autouse=True)
def reindex_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(search_indexing, "request_case_reindex", lambda case_id: calls.append(case_id))
    return calls


def _actor(org_id=None) -> Actor:
    return Actor(user_id=uuid4(), org_id=org_id or uuid4())


def _case(*, org_id, status="ACTIVE", resolution_details=None, current_step_number=1):
    return SimpleNamespace(
        id=uuid4(),
        org_id=org_id,
        agreement_id=uuid4(),
        type="INDIVIDUAL",
        status=status,
        category="Overtime",
        current_stage="FORMAL",
        current_step_number=current_step_number,
        resolution_details=resolution_details,
        assigned_to_id=None,
        estimated_cost=None,
        actual_cost=None,
        last_updated_by_id=None,
    )


def _resolved(step_number=1, time_limit_days=5, is_calendar_days=False, stage="FORMAL"):
    return ResolvedStep(
        template=SimpleNamespace(step_number=step_number),
        step_number=step_number,
        stage=stage,
        time_limit_days=time_limit_days,
        is_calendar_days=is_calendar_days,
        description="Meet with supervisor",
    )


def _create_data(**overrides) -> CaseCreate:
    values = {
        "agreement_id": uuid4(),
        "bargaining_unit_id": uuid4(),
        "type": "INDIVIDUAL",
        "stage": "FORMAL",
        "filed_at": datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        "grievors": [Grievor(first_name="Alex", last_name="Morgan", member_number="M-1")],
        "statement": "Overtime bypassed",
        "settlement_desired": "Make whole",
    }
    values.update(overrides)
    return CaseCreate(**values)


def _create_session(**kwargs) -> _SessionStub:
    return _SessionStub(
        firsts={
            (Agreement,): SimpleNamespace(id=uuid4()),
            (BargainingUnit,): SimpleNamespace(id=uuid4()),
        },
        **kwargs,
    )


def test_create_case_writes_case_report_step_and_created_event(monkeypatch, reindex_calls) -> None:
    actor = _actor()
    db = _create_session()
    monkeypatch.setattr(case_lifecycle, "resolve_initial_template", lambda *_args: _resolved())
    monkeypatch.setattr(case_lifecycle, "allocate_next", lambda *_args: 7)

    case = case_lifecycle.create_case_use_case(db=db, actor=actor, data=_create_data())

    assert case.case_number == "G-007"
    assert case.status == "ACTIVE"
    assert case.current_step_number == 1
    assert case.creator_id == actor.user_id
    assert case.org_id == actor.org_id

    reports = [item for item in db.added if isinstance(item, CaseReport)]
    steps = [item for item in db.added if isinstance(item, CaseStep)]
    assert len(reports) == 1
    assert reports[0].grievors[0]["firstName"] == "Alex"
    assert reports[0].grievors[0]["schemaVersion"] == 1
    assert len(steps) == 1
    assert steps[0].status == "PENDING"
    assert steps[0].due_date == date(2024, 1, 8)
    assert steps[0].notes == "Meet with supervisor"

    events = db.events()
    assert [event.event_type for event in events] == ["CREATED"]
    assert events[0].new_value == "G-007"
    assert db.commit_calls == 1
    assert reindex_calls == [case.id]


def test_create_case_reports_requested_stage_from_resolver(monkeypatch) -> None:
    db = _create_session()
    monkeypatch.setattr(
        case_lifecycle,
        "resolve_initial_template",
        lambda *_args: _resolved(step_number=2, stage="INFORMAL"),
    )
    monkeypatch.setattr(case_lifecycle, "allocate_next", lambda *_args: 1)

    case = case_lifecycle.create_case_use_case(db=db, actor=_actor(), data=_create_data(stage="INFORMAL"))

    assert case.current_stage == "INFORMAL"
    assert case.current_step_number == 2


def test_create_case_requires_agreement_before_any_write() -> None:
    db = _create_session()

    with pytest.raises(ValidationError, match="Collective agreement is required") as exc:
        case_lifecycle.create_case_use_case(db=db, actor=_actor(), data=_create_data(agreement_id=None))

    assert exc.value.code == "CASE_AGREEMENT_REQUIRED"
    assert exc.value.http_status == 400
    assert db.added == []
    assert db.commit_calls == 0
    assert db.rollback_calls == 1


def test_create_case_agreement_from_other_org_is_not_found() -> None:
    db = _SessionStub(firsts={(Agreement,): None, (BargainingUnit,): SimpleNamespace(id=uuid4())})

    with pytest.raises(NotFoundError) as exc:
        case_lifecycle.create_case_use_case(db=db, actor=_actor(), data=_create_data())

    assert exc.value.code == "AGREEMENT_NOT_FOUND"
    assert exc.value.http_status == 404


def test_create_case_without_templates_allocates_no_number(monkeypatch) -> None:
    db = _create_session()
    allocations = []

    def _missing(*_args):
        raise ConfigurationMissingError(code="STEP_TEMPLATES_MISSING", message="No grievance steps are set up")

    monkeypatch.setattr(case_lifecycle, "resolve_initial_template", _missing)
    monkeypatch.setattr(case_lifecycle, "allocate_next", lambda *args: allocations.append(args) or 1)

    with pytest.raises(ConfigurationMissingError):
        case_lifecycle.create_case_use_case(db=db, actor=_actor(), data=_create_data())

    assert allocations == []
    assert db.added == []
    assert db.commit_calls == 0


def test_create_case_store_failure_rolls_back_with_stable_code(monkeypatch, reindex_calls) -> None:
    db = _create_session(fail_commit=True)
    monkeypatch.setattr(case_lifecycle, "resolve_initial_template", lambda *_args: _resolved())
    monkeypatch.setattr(case_lifecycle, "allocate_next", lambda *_args: 3)

    with pytest.raises(DomainError) as exc:
        case_lifecycle.create_case_use_case(db=db, actor=_actor(), data=_create_data())

    assert exc.value.code == "CASE_CREATE_FAILED"
    assert exc.value.http_status == 500
    assert "connection reset" not in exc.value.message
    assert db.rollback_calls == 1
    assert reindex_calls == []


def test_operations_without_actor_are_unauthenticated() -> None:
    with pytest.raises(UnauthenticatedError) as exc:
        case_lifecycle.create_case_use_case(db=_create_session(), actor=None, data=_create_data())

    assert exc.value.http_status == 401
    assert exc.value.code == "UNAUTHENTICATED"


def test_delete_case_removes_owned_rows_in_one_commit(reindex_calls) -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    db = _SessionStub(
        firsts={
            (Case,): case,
            (Evidence,): None,
            (CaseEvent,): None,
            (StepOutcome,): None,
            (CaseStep,): None,
            (CaseReport,): None,
            (Complaint,): None,
        }
    )

    case_lifecycle.delete_case_use_case(db=db, actor=actor, case_id=case.id)

    assert db.locked == [Case]
    assert set(db.bulk_deleted) == {Evidence, CaseEvent, StepOutcome, CaseStep, CaseReport}
    assert db.bulk_updated[0][0] is Complaint
    assert list(db.bulk_updated[0][1].values()) == [None]
    assert db.deleted == [case]
    assert db.commit_calls == 1
    assert reindex_calls == [case.id]


def test_delete_case_from_other_org_is_not_found() -> None:
    db = _SessionStub(firsts={(Case,): None})

    with pytest.raises(NotFoundError) as exc:
        case_lifecycle.delete_case_use_case(db=db, actor=_actor(), case_id=uuid4())

    assert exc.value.code == "CASE_NOT_FOUND"
    assert db.bulk_deleted == []
    assert db.commit_calls == 0


def test_update_step_completed_twice_keeps_first_timestamp(monkeypatch) -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    step = SimpleNamespace(id=uuid4(), status="PENDING", completed_date=None, notes=None)
    db = _SessionStub(firsts={(CaseStep, Case): (step, case)})
    first = datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)
    second = datetime(2024, 2, 2, 10, 0, tzinfo=timezone.utc)
    stamps = iter([first, second])
    monkeypatch.setattr(case_steps, "now_utc", lambda: next(stamps))

    case_steps.update_step_use_case(db=db, actor=actor, step_id=step.id, status="COMPLETED")
    case_steps.update_step_use_case(db=db, actor=actor, step_id=step.id, status="COMPLETED")

    assert step.status == "COMPLETED"
    assert step.completed_date == first
    assert case.last_updated_by_id == actor.user_id
    assert db.commit_calls == 2


def test_update_step_non_completed_status_clears_completion_date() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    step = SimpleNamespace(
        id=uuid4(),
        status="COMPLETED",
        completed_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
        notes=None,
    )
    db = _SessionStub(firsts={(CaseStep, Case): (step, case)})

    case_steps.update_step_use_case(
        db=db,
        actor=actor,
        step_id=step.id,
        status="EXTENDED",
        notes="Extension agreed",
        completed_date=datetime(2024, 2, 5, tzinfo=timezone.utc),
    )

    assert step.status == "EXTENDED"
    assert step.completed_date is None
    assert step.notes == "Extension agreed"


def test_update_step_with_only_a_date_corrects_completion_date() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    step = SimpleNamespace(
        id=uuid4(),
        status="COMPLETED",
        completed_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        notes="Met with supervisor",
    )
    db = _SessionStub(firsts={(CaseStep, Case): (step, case)})
    corrected = datetime(2024, 2, 2, tzinfo=timezone.utc)

    case_steps.update_step_use_case(db=db, actor=actor, step_id=step.id, completed_date=corrected)

    assert step.completed_date == corrected
    assert step.status == "COMPLETED"
    assert step.notes == "Met with supervisor"
    assert db.commit_calls == 1


def test_advance_step_rejects_duplicate_step_number() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    db = _SessionStub(firsts={(Case,): case, (CaseStep,): SimpleNamespace(id=uuid4())})

    with pytest.raises(DomainError) as exc:
        case_steps.advance_step_use_case(
            db=db,
            actor=actor,
            case_id=case.id,
            step_number=1,
            stage="FORMAL",
            due=date(2024, 3, 1),
        )

    assert exc.value.code == "STEP_ALREADY_EXISTS"
    assert exc.value.http_status == 409
    assert db.added == []


def test_advance_step_inserts_pending_step_and_leaves_previous_alone() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    db = _SessionStub(firsts={(Case,): case, (CaseStep,): None})

    step = case_steps.advance_step_use_case(
        db=db,
        actor=actor,
        case_id=case.id,
        step_number=2,
        stage="FORMAL",
        due=date(2024, 3, 1),
        notes="Second meeting",
    )

    assert step.status == "PENDING"
    assert step.step_number == 2
    assert case.current_step_number == 1
    assert db.added == [step]
    assert db.commit_calls == 1


def test_advance_to_next_step_records_outcome_and_moves_pointer(monkeypatch, reindex_calls) -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id, current_step_number=2)
    db = _SessionStub(firsts={(Case,): case})
    next_template = SimpleNamespace(
        step_number=3,
        stage="FORMAL",
        time_limit_days=0,
        is_calendar_days=False,
        description="Department head meeting",
    )
    monkeypatch.setattr(case_steps, "resolve_next_template", lambda *_args: next_template)
    monkeypatch.setattr(case_steps, "now_utc", lambda: datetime(2024, 4, 1, tzinfo=timezone.utc))

    case_steps.advance_to_next_step_use_case(db=db, actor=actor, case_id=case.id, outcomes="Denied at step 2")

    outcomes = [item for item in db.added if isinstance(item, StepOutcome)]
    steps = [item for item in db.added if isinstance(item, CaseStep)]
    assert outcomes[0].step_number == 2
    assert outcomes[0].outcomes == "Denied at step 2"
    assert steps[0].step_number == 3
    assert steps[0].due_date == date(2024, 4, 1)
    assert case.current_step_number == 3

    events = db.events()
    assert [event.event_type for event in events] == ["STEP_COMPLETED"]
    payload = json.loads(events[0].new_value)
    assert payload == {"previousStep": 2, "newStep": 3, "outcomes": "Denied at step 2"}
    assert db.commit_calls == 1
    assert reindex_calls == [case.id]


def test_advance_to_next_step_without_template_changes_nothing(monkeypatch) -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id, current_step_number=5)
    db = _SessionStub(firsts={(Case,): case})
    monkeypatch.setattr(case_steps, "resolve_next_template", lambda *_args: None)

    with pytest.raises(ConfigurationMissingError) as exc:
        case_steps.advance_to_next_step_use_case(db=db, actor=actor, case_id=case.id, outcomes="Denied")

    assert exc.value.code == "NEXT_STEP_NOT_CONFIGURED"
    assert case.current_step_number == 5
    assert db.added == []
    assert db.commit_calls == 0


def test_change_assignee_encodes_unassigned_as_empty_string() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    assignee = SimpleNamespace(id=uuid4())
    db = _SessionStub(firsts={(Case,): case, (User,): assignee})

    case_updates.change_assignee_use_case(db=db, actor=actor, case_id=case.id, assigned_to_id=assignee.id)
    case_updates.change_assignee_use_case(db=db, actor=actor, case_id=case.id, assigned_to_id=None)

    events = db.events()
    assert [event.event_type for event in events] == ["ASSIGNEE_CHANGED", "ASSIGNEE_CHANGED"]
    assert events[0].previous_value == ""
    assert events[0].new_value == str(assignee.id)
    assert events[1].previous_value == str(assignee.id)
    assert events[1].new_value == ""
    assert case.assigned_to_id is None


def test_status_outcomes_merge_preserves_original_resolution(monkeypatch) -> None:
    from caseflow.services import resolution

    org_id = uuid4()
    first_actor = _actor(org_id)
    second_actor = _actor(org_id)
    case = _case(org_id=org_id)
    db = _SessionStub(firsts={(Case,): case})
    first = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    second = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)
    stamps = iter([first, second])
    monkeypatch.setattr(resolution, "now_utc", lambda: next(stamps))

    case_updates.update_status_use_case(
        db=db, actor=first_actor, case_id=case.id, new_status="SETTLED", outcomes="paid $500"
    )

    assert case.status == "SETTLED"
    assert case.resolution_details["resolutionType"] == "SETTLED"
    assert case.resolution_details["resolutionDate"] == first.isoformat()
    assert case.resolution_details["resolvedBy"] == str(first_actor.user_id)

    case_updates.update_status_use_case(
        db=db, actor=second_actor, case_id=case.id, new_status="SETTLED", outcomes="correction: paid $600"
    )

    assert case.resolution_details["resolutionType"] == "SETTLED"
    assert case.resolution_details["resolvedBy"] == str(first_actor.user_id)
    assert case.resolution_details["outcomes"] == "correction: paid $600"
    assert case.resolution_details["resolutionDate"] == second.isoformat()
    assert case.last_updated_by_id == second_actor.user_id

    events = db.events()
    assert [event.event_type for event in events] == ["STATUS_CHANGED", "STATUS_CHANGED"]
    assert (events[0].previous_value, events[0].new_value) == ("ACTIVE", "SETTLED")


def test_status_change_without_stage_keeps_current_stage() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    db = _SessionStub(firsts={(Case,): case})

    case_updates.update_status_use_case(db=db, actor=actor, case_id=case.id, new_status="ACTIVE")

    assert case.current_stage == "FORMAL"
    assert case.resolution_details is None

    case_updates.update_status_use_case(db=db, actor=actor, case_id=case.id, new_status="ACTIVE", new_stage="INFORMAL")

    assert case.current_stage == "INFORMAL"


def test_incoming_resolution_details_get_resolver_filled_in() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    db = _SessionStub(firsts={(Case,): case})

    case_updates.update_status_use_case(
        db=db,
        actor=actor,
        case_id=case.id,
        new_status="RESOLVED_ARBITRATION",
        resolution_details={"resolutionType": "RESOLVED_ARBITRATION", "details": "Award issued"},
    )

    assert case.resolution_details["resolvedBy"] == str(actor.user_id)
    assert case.resolution_details["resolutionDate"]
    assert case.resolution_details["details"] == "Award issued"


def test_settle_requires_details() -> None:
    actor = _actor()
    db = _SessionStub(firsts={(Case,): _case(org_id=actor.org_id)})

    with pytest.raises(ValidationError) as exc:
        case_updates.settle_case_use_case(db=db, actor=actor, case_id=uuid4(), details="   ")

    assert exc.value.code == "RESOLUTION_DETAILS_REQUIRED"
    assert db.commit_calls == 0


def test_withdraw_writes_resolution_and_both_events() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    db = _SessionStub(firsts={(Case,): case})

    case_updates.withdraw_case_use_case(db=db, actor=actor, case_id=case.id, details="Grievor withdrew")

    assert case.status == "WITHDRAWN"
    assert case.resolution_details["resolutionType"] == "WITHDRAWN"
    assert case.resolution_details["details"] == "Grievor withdrew"
    assert [event.event_type for event in db.events()] == ["STATUS_CHANGED", "GRIEVANCE_WITHDRAWN"]
    assert db.commit_calls == 1


def test_update_field_returns_previous_value_and_optionally_logs() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    report = SimpleNamespace(statement="old statement", articles_violated=None, settlement_desired="")
    db = _SessionStub(firsts={(Case,): case, (CaseReport,): report})

    change = case_updates.update_field_use_case(
        db=db, actor=actor, case_id=case.id, field="statement", value="new statement"
    )

    assert (change.previous, change.new) == ("old statement", "new statement")
    assert report.statement == "new statement"
    assert db.events() == []

    case_updates.update_field_use_case(
        db=db, actor=actor, case_id=case.id, field="articles_violated", value="12.03", record_event=True
    )

    events = db.events()
    assert [event.event_type for event in events] == ["STATEMENT_UPDATED"]
    assert events[0].previous_value is None
    assert events[0].new_value == "articles_violated=12.03"

    case_updates.update_field_use_case(
        db=db, actor=actor, case_id=case.id, field="statement", value="final statement", record_event=True
    )

    assert (db.events()[-1].previous_value, db.events()[-1].new_value) == ("new statement", "final statement")


def test_update_field_rejects_non_report_fields() -> None:
    actor = _actor()
    db = _SessionStub(firsts={})

    with pytest.raises(ValidationError) as exc:
        case_updates.update_field_use_case(db=db, actor=actor, case_id=uuid4(), field="status", value="x")

    assert exc.value.code == "CASE_FIELD_NOT_EDITABLE"


def test_cost_and_category_updates_are_audited() -> None:
    actor = _actor()
    case = _case(org_id=actor.org_id)
    db = _SessionStub(firsts={(Case,): case})

    case_updates.update_cost_use_case(
        db=db, actor=actor, case_id=case.id, field="estimated_cost", value=Decimal("1500.00")
    )
    case_updates.update_category_use_case(db=db, actor=actor, case_id=case.id, category="  Scheduling ")

    assert case.estimated_cost == Decimal("1500.00")
    assert case.category == "Scheduling"
    events = db.events()
    assert [event.event_type for event in events] == ["COST_UPDATED", "CATEGORY_CHANGED"]
    assert events[0].previous_value is None
    assert events[0].new_value == "estimated_cost=1500.00"
    assert (events[1].previous_value, events[1].new_value) == ("Overtime", "Scheduling")
