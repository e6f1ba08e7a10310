"""Property-based tests for notionwatch using Hypothesis.

These tests check invariants of the differ and the incremental delta over
randomly generated snapshots.  They complement the example-based unit
tests in ``tests/unit/diff``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from notionwatch.diff import diff_snapshots, fields_equal, incremental_delta, values_equal
from notionwatch.models import ChangeKind, ChangeSummary, Record, Snapshot
from notionwatch.store.codec import snapshot_from_dict, snapshot_to_dict

CAPTURED = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Reusable strategies
# ---------------------------------------------------------------------------

_scalar_st = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-1000, max_value=1000),
    st.text(max_size=8),
)
_value_st = st.one_of(_scalar_st, st.lists(st.text(max_size=4), max_size=3))
_fields_st = st.dictionaries(st.sampled_from(["Name", "Status", "Tags", "Due", "N"]), _value_st)
_marker_st = st.sampled_from(["t0", "t1", "t2"])


@st.composite
def snapshots(draw, ids=st.sampled_from([f"p{i}" for i in range(8)])):
    record_ids = draw(st.lists(ids, unique=True, max_size=8))
    records = tuple(
        Record(id=record_id, revision_marker=draw(_marker_st), fields=draw(_fields_st))
        for record_id in record_ids
    )
    return Snapshot(collection_id="db1", captured_at=CAPTURED, records=records)


@st.composite
def evolved(draw, base: Snapshot):
    """A later version of *base*: some records kept, changed, dropped or added."""
    records = []
    for record in base.records:
        action = draw(st.sampled_from(["keep", "touch", "edit", "drop"]))
        if action == "keep":
            records.append(record)
        elif action == "touch":
            records.append(Record(record.id, record.revision_marker + "'", dict(record.fields)))
        elif action == "edit":
            records.append(Record(record.id, record.revision_marker, draw(_fields_st)))
    taken = {r.id for r in records} | set(base.ids())
    for new_id in draw(st.lists(st.sampled_from([f"n{i}" for i in range(4)]), unique=True)):
        if new_id not in taken:
            records.append(Record(new_id, draw(_marker_st), draw(_fields_st)))
    return Snapshot(collection_id="db1", captured_at=CAPTURED, records=tuple(records))


# ---------------------------------------------------------------------------
# Differ invariants
# ---------------------------------------------------------------------------

class TestDifferProperties:
    @given(previous=st.one_of(st.none(), snapshots()), current=snapshots())
    @settings(max_examples=200, deadline=None)
    def test_deterministic(self, previous, current):
        assert diff_snapshots(previous, current) == diff_snapshots(previous, current)

    @given(previous=snapshots(), current=snapshots())
    @settings(deadline=None)
    def test_summary_matches_changes(self, previous, current):
        result = diff_snapshots(previous, current)
        summary = result.summary
        assert summary == ChangeSummary.tally(result.changes)
        assert summary.total == len(result.changes)

    @given(snapshot=snapshots())
    @settings(deadline=None)
    def test_identical_snapshots_have_no_changes(self, snapshot):
        assert diff_snapshots(snapshot, snapshot).changes == []

    @given(current=snapshots())
    @settings(deadline=None)
    def test_first_run_adds_everything_in_order(self, current):
        result = diff_snapshots(None, current)
        assert [c.id for c in result.changes] == current.ids()
        assert all(c.kind is ChangeKind.ADDED for c in result.changes)

    @given(previous=snapshots(), current=snapshots())
    @settings(deadline=None)
    def test_classification_matches_id_sets(self, previous, current):
        result = diff_snapshots(previous, current)
        before, after = set(previous.ids()), set(current.ids())
        assert {c.id for c in result.of_kind(ChangeKind.ADDED)} == after - before
        assert {c.id for c in result.of_kind(ChangeKind.DELETED)} == before - after
        assert {c.id for c in result.of_kind(ChangeKind.UPDATED)} <= before & after

    @given(previous=snapshots(), current=snapshots())
    @settings(deadline=None)
    def test_updates_are_real_and_field_lists_accurate(self, previous, current):
        old = previous.by_id()
        for change in diff_snapshots(previous, current).of_kind(ChangeKind.UPDATED):
            before = old[change.id]
            after = current.by_id()[change.id]
            assert before.revision_marker != after.revision_marker or change.field_changes
            assert bool(change.field_changes) == (not fields_equal(before.fields, after.fields))

    @given(previous=snapshots(), current=snapshots())
    @settings(deadline=None)
    def test_order_current_then_previous(self, previous, current):
        result = diff_snapshots(previous, current)
        expected = [i for i in current.ids() if i not in set(previous.ids()) or any(
            c.id == i for c in result.of_kind(ChangeKind.UPDATED)
        )] + [i for i in previous.ids() if i not in set(current.ids())]
        assert [c.id for c in result.changes] == expected


# ---------------------------------------------------------------------------
# Incremental delta invariants
# ---------------------------------------------------------------------------

class TestIncrementalProperties:
    @given(data=st.data())
    @settings(deadline=None)
    def test_no_repeat_of_reported_changes(self, data):
        first = data.draw(snapshots())
        reported = data.draw(evolved(first))
        fresh = data.draw(evolved(reported))
        delta = incremental_delta(reported, fresh)
        old = reported.by_id()
        unchanged_since_report = {
            r.id for r in fresh.records
            if r.id in old
            and r.revision_marker == old[r.id].revision_marker
            and fields_equal(r.fields, old[r.id].fields)
        }
        assert not unchanged_since_report & {c.id for c in delta.changes}

    @given(data=st.data())
    @settings(deadline=None)
    def test_delta_equals_fresh_diff(self, data):
        reported = data.draw(snapshots())
        fresh = data.draw(evolved(reported))
        delta = incremental_delta(reported, fresh)
        assert delta.changes == diff_snapshots(reported, fresh).changes


# ---------------------------------------------------------------------------
# Equality and storage
# ---------------------------------------------------------------------------

class TestEqualityProperties:
    @given(value=_value_st)
    def test_reflexive(self, value):
        assert values_equal(value, value)

    @given(a=_value_st, b=_value_st)
    def test_symmetric(self, a, b):
        assert values_equal(a, b) == values_equal(b, a)

    @given(fields=_fields_st)
    def test_key_order_ignored(self, fields):
        assert fields_equal(fields, dict(reversed(list(fields.items()))))


class TestCodecProperties:
    @given(snapshot=snapshots())
    @settings(deadline=None)
    def test_stored_form_restores_snapshot(self, snapshot):
        assert snapshot_from_dict(snapshot_to_dict(snapshot), "db1") == snapshot
