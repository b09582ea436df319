from __future__ import annotations

from collections import defaultdict
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from caseflow.database import Base
from caseflow.models import CaseEvent, User
from caseflow.services.event_log import (
    EventType,
    append_event,
    decode_optional_value,
    encode_optional_value,
    fetch_creators,
    list_case_events,
    parse_event_type,
)


class _QueryStub:
    def __init__(self, rows):
        self._rows = rows

    def join(self, *_args, **_kwargs):
        return self

    def filter(self, *_args, **_kwargs):
        return self

    def order_by(self, *_args, **_kwargs):
        return self

    def all(self):
        return self._rows


class _SessionStub:
    def __init__(self, rows=None):
        self._rows = rows or []
        self.added = []
        self.commit_calls = 0
        self.calls: dict[tuple[str, ...], int] = defaultdict(int)

    def query(self, *entities):
        self.calls[tuple(entity.__name__ for entity in entities)] += 1
        if entities == (CaseEvent, User):
            return _QueryStub(self._rows)
        raise AssertionError(f"Unexpected query entities: {entities}")

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.commit_calls += 1


def test_known_event_types_parse_to_enum_and_unknown_stay_strings() -> None:
    assert parse_event_type("STATUS_CHANGED") is EventType.STATUS_CHANGED
    assert parse_event_type("HEARING_SCHEDULED") == "HEARING_SCHEDULED"


def test_empty_string_round_trips_to_none() -> None:
    assert encode_optional_value(None) == ""
    assert decode_optional_value("") is None
    assert decode_optional_value(None) is None
    assert decode_optional_value("abc") == "abc"


def test_append_event_stages_row_without_commit() -> None:
    db = _SessionStub()
    case_id = uuid4()

    event = append_event(
        db,
        case_id=case_id,
        user_id=uuid4(),
        event_type=EventType.CATEGORY_CHANGED,
        previous_value="Overtime",
        new_value="Scheduling",
    )

    assert db.added == [event]
    assert event.event_type == "CATEGORY_CHANGED"
    assert event.case_id == case_id
    assert db.commit_calls == 0


def test_case_events_reject_updates_after_insert() -> None:
    from caseflow.models import _reject_case_event_update

    with pytest.raises(ValueError, match="append-only"):
        _reject_case_event_update(None, None, SimpleNamespace(id=uuid4()))


def test_fetch_creators_uses_single_query_and_first_created_event_wins() -> None:
    creator = SimpleNamespace(id=uuid4(), name="Jordan Lee")
    later = SimpleNamespace(id=uuid4(), name="Sam Rivera")
    case_ids = [uuid4() for _ in range(20)]
    rows = [(SimpleNamespace(case_id=case_id), creator) for case_id in case_ids]
    rows.append((SimpleNamespace(case_id=case_ids[0]), later))
    db = _SessionStub(rows)

    creators = fetch_creators(db, case_ids)

    assert len(creators) == 20
    assert creators[case_ids[0]] is creator
    assert db.calls == {("CaseEvent", "User"): 1}


def test_fetch_creators_skips_query_for_empty_page() -> None:
    db = _SessionStub()

    assert fetch_creators(db, []) == {}
    assert dict(db.calls) == {}


def test_events_of_one_transaction_come_back_in_write_order(tmp_path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'events.db'}")
    Base.metadata.create_all(engine, tables=[CaseEvent.__table__])
    user_id = uuid4()
    case_ids = [uuid4() for _ in range(40)]

    with Session(engine) as db:
        for case_id in case_ids:
            append_event(
                db,
                case_id=case_id,
                user_id=user_id,
                event_type=EventType.STATUS_CHANGED,
                previous_value="ACTIVE",
                new_value="SETTLED",
            )
            append_event(
                db,
                case_id=case_id,
                user_id=user_id,
                event_type=EventType.GRIEVANCE_SETTLED,
                new_value="Paid one shift",
            )
        db.commit()

    with Session(engine) as db:
        for case_id in case_ids:
            events = list_case_events(db, case_id)
            assert [event.event_type for event in events] == ["STATUS_CHANGED", "GRIEVANCE_SETTLED"]
            assert events[0].seq < events[1].seq

    engine.dispose()
