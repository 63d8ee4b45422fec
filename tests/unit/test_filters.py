"""
Unit tests for row predicates and query plans.

Tests cover:
- Filter operators and type-mismatch behavior
- like/ilike wildcard semantics
- Stable ordering
- Pagination, including range-over-limit precedence
- Plan immutability
"""

import pytest

from emulator.localbase.query.filters import (
    Filter,
    FilterOp,
    Ordering,
    apply_filters,
    apply_ordering,
    apply_pagination,
    like_pattern,
)
from emulator.localbase.query.plan import QueryPlan


@pytest.fixture
def rows():
    return [
        {"id": "1", "title": "Buy milk", "priority": 2, "done": False, "owner": "ann"},
        {"id": "2", "title": "Walk dog", "priority": 1, "done": True, "owner": "bob"},
        {"id": "3", "title": "buy BREAD", "priority": 3, "done": False, "owner": None},
        {"id": "4", "title": "Call 100% mom", "priority": 2, "done": True},
    ]


class TestFilter:
    """Tests for individual predicates."""

    def test_eq_and_neq(self, rows):
        """eq keeps exact matches, neq keeps the rest."""
        eq = apply_filters(rows, [Filter("priority", FilterOp.EQ, 2)])
        neq = apply_filters(rows, [Filter("priority", FilterOp.NEQ, 2)])

        assert [r["id"] for r in eq] == ["1", "4"]
        assert [r["id"] for r in neq] == ["2", "3"]

    def test_eq_does_not_conflate_bool_and_int(self):
        """True is not equal to 1."""
        row = {"flag": True}

        assert not Filter("flag", FilterOp.EQ, 1).matches(row)
        assert Filter("flag", FilterOp.EQ, True).matches(row)

    def test_missing_column_reads_as_none(self, rows):
        """A row without the column behaves as if it held None."""
        matched = apply_filters(rows, [Filter("owner", FilterOp.EQ, None)])

        assert [r["id"] for r in matched] == ["3", "4"]

    def test_ordered_comparisons(self, rows):
        """gt/gte/lt/lte compare values."""
        assert [r["id"] for r in apply_filters(rows, [Filter("priority", FilterOp.GT, 1)])] == ["1", "3", "4"]
        assert [r["id"] for r in apply_filters(rows, [Filter("priority", FilterOp.GTE, 3)])] == ["3"]
        assert [r["id"] for r in apply_filters(rows, [Filter("priority", FilterOp.LT, 2)])] == ["2"]
        assert [r["id"] for r in apply_filters(rows, [Filter("priority", FilterOp.LTE, 2)])] == ["1", "2", "4"]

    def test_incomparable_values_do_not_match(self):
        """Comparing str to int is a non-match, not an error."""
        row = {"priority": "high"}

        assert not Filter("priority", FilterOp.GT, 1).matches(row)
        assert not Filter("priority", FilterOp.LT, 1).matches(row)
        assert not Filter("missing", FilterOp.GTE, 0).matches(row)

    def test_like_is_case_sensitive(self, rows):
        """like matches the literal case."""
        matched = apply_filters(rows, [Filter("title", FilterOp.LIKE, "buy%")])

        assert [r["id"] for r in matched] == ["3"]

    def test_ilike_is_case_insensitive(self, rows):
        """ilike ignores case."""
        matched = apply_filters(rows, [Filter("title", FilterOp.ILIKE, "buy%")])

        assert [r["id"] for r in matched] == ["1", "3"]

    def test_like_is_unanchored(self, rows):
        """The pattern may match anywhere in the value."""
        matched = apply_filters(rows, [Filter("title", FilterOp.LIKE, "dog")])

        assert [r["id"] for r in matched] == ["2"]

    def test_like_treats_other_characters_literally(self):
        """Regex metacharacters in the pattern are not special."""
        row = {"title": "a.c"}

        assert Filter("title", FilterOp.LIKE, "a.c").matches(row)
        assert not Filter("title", FilterOp.LIKE, "a.c").matches({"title": "abc"})
        assert not Filter("title", FilterOp.LIKE, "a_c").matches({"title": "abc"})

    def test_like_percent_matches_empty(self):
        """% matches zero characters."""
        assert Filter("title", FilterOp.LIKE, "ab%c").matches({"title": "abc"})

    def test_like_on_none_never_matches(self):
        assert not Filter("title", FilterOp.LIKE, "%").matches({"title": None})

    def test_like_on_non_string_uses_text_form(self):
        """Numbers and booleans are searched by their text form."""
        assert Filter("n", FilterOp.LIKE, "4%").matches({"n": 42})
        assert Filter("done", FilterOp.ILIKE, "TRUE").matches({"done": True})

    def test_like_pattern_is_cached(self):
        assert like_pattern("a%b", False) is like_pattern("a%b", False)

    def test_in(self, rows):
        """in tests membership."""
        matched = apply_filters(rows, [Filter("owner", FilterOp.IN, ("ann", "bob"))])

        assert [r["id"] for r in matched] == ["1", "2"]

    def test_filters_combine_with_and(self, rows):
        matched = apply_filters(
            rows,
            [Filter("done", FilterOp.EQ, False), Filter("priority", FilterOp.GT, 2)],
        )

        assert [r["id"] for r in matched] == ["3"]


class TestOrderingAndPagination:
    """Tests for ordering and pagination helpers."""

    def test_ascending_is_stable(self, rows):
        """Equal keys keep their input order."""
        ordered = apply_ordering(rows, Ordering("priority"))

        assert [r["id"] for r in ordered] == ["2", "1", "4", "3"]

    def test_descending(self, rows):
        ordered = apply_ordering(rows, Ordering("priority", ascending=False))

        assert [r["id"] for r in ordered] == ["3", "1", "4", "2"]

    def test_no_ordering_keeps_input(self, rows):
        assert apply_ordering(rows, None) == rows

    def test_mixed_types_do_not_raise(self):
        """Incomparable values compare as equal."""
        rows = [{"id": "a", "v": 1}, {"id": "b", "v": "x"}, {"id": "c", "v": None}]

        ordered = apply_ordering(rows, Ordering("v"))

        assert len(ordered) == 3

    def test_limit(self, rows):
        assert [r["id"] for r in apply_pagination(rows, 2, None)] == ["1", "2"]

    def test_range_is_inclusive(self, rows):
        assert [r["id"] for r in apply_pagination(rows, None, (1, 2))] == ["2", "3"]

    def test_range_wins_over_limit(self, rows):
        """When both are set, the range applies and the limit is ignored."""
        assert [r["id"] for r in apply_pagination(rows, 1, (0, 2))] == ["1", "2", "3"]

    def test_range_past_end(self, rows):
        assert [r["id"] for r in apply_pagination(rows, None, (3, 10))] == ["4"]


class TestQueryPlan:
    """Tests for QueryPlan."""

    def test_builder_returns_new_plan(self):
        """Builder methods never modify the receiver."""
        base = QueryPlan("todos")
        filtered = base.eq("done", False)

        assert base.filters == ()
        assert len(filtered.filters) == 1
        assert filtered.table == "todos"

    def test_shared_prefix_does_not_interfere(self, rows):
        """Two plans extended from one prefix stay independent."""
        base = QueryPlan("todos").eq("done", False)
        high = base.gt("priority", 2)
        low = base.lt("priority", 3)

        assert [r["id"] for r in high.resolve(rows)] == ["3"]
        assert [r["id"] for r in low.resolve(rows)] == ["1"]

    def test_order_replaces_previous(self):
        plan = QueryPlan("todos").order("priority").order("title", ascending=False)

        assert plan.ordering == Ordering("title", ascending=False)

    def test_match_appends_eq_per_entry(self, rows):
        plan = QueryPlan("todos").match({"done": True, "priority": 2})

        assert len(plan.filters) == 2
        assert [r["id"] for r in plan.resolve(rows)] == ["4"]

    def test_in_copies_values(self):
        values = ["a", "b"]
        plan = QueryPlan("todos").in_("owner", values)
        values.append("c")

        assert plan.filters[0].operand == ("a", "b")

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            QueryPlan("todos").limit(-1)

    def test_resolve_orders_before_paginating(self, rows):
        """Pagination applies to the ordered result."""
        plan = QueryPlan("todos").order("priority", ascending=False).limit(2)

        assert [r["id"] for r in plan.resolve(rows)] == ["3", "1"]

    def test_resolution_is_repeatable(self, rows):
        plan = QueryPlan("todos").neq("owner", "bob").order("priority")

        assert plan.resolve(rows) == plan.resolve(rows)

    def test_filtered_result_is_subset(self, rows):
        """Adding a filter never adds rows."""
        plan = QueryPlan("todos").eq("done", False)
        narrower = plan.ilike("title", "%milk%")

        wide_ids = {r["id"] for r in plan.resolve(rows)}
        narrow_ids = {r["id"] for r in narrower.resolve(rows)}

        assert narrow_ids <= wide_ids
        assert narrow_ids == {"1"}

    def test_match_rows_ignores_pagination(self, rows):
        plan = QueryPlan("todos").eq("done", False).limit(1)

        assert len(plan.match_rows(rows)) == 2
