"""Tests for sort, projection and query translation."""

from __future__ import annotations

from typing import Any

import pytest

from docstore_driver.core.exceptions import InvalidQueryError, InvalidSortDirectionError
from docstore_driver.services.query_translator import (
    apply_projection,
    apply_window,
    build_projection,
    build_sort_spec,
    compare_values,
    parse_order_token,
    sort_documents,
    translate_query,
    validate_window,
)

# pylint: disable=missing-function-docstring

DOCS: list[dict[str, Any]] = [
    {"id": "1", "a": 1, "b": "yes", "tags": ["x", "y"], "meta": {"score": 10}},
    {"id": "2", "a": 2, "b": "no", "tags": ["y"], "meta": {"score": 20}},
    {"id": "3", "a": 3, "b": "yes", "meta": {"score": 5}},
    {"id": "4", "a": "text", "b": None},
]


def _ids(query: Any) -> list[str]:
    condition = translate_query(query)
    return [doc["id"] for doc in DOCS if condition(doc)]


class TestSortTranslation:
    """Sort tokens become an ordered field/direction mapping."""

    def test_parse_order_token(self) -> None:
        assert parse_order_token("asc(name)") == ("name", 1)
        assert parse_order_token("desc(meta.score)") == ("meta.score", -1)

    @pytest.mark.parametrize("token", ["sideways(a)", "ASC(a)", "(a)"])
    def test_invalid_direction_names_the_value(self, token: str) -> None:
        with pytest.raises(InvalidSortDirectionError) as exc_info:
            parse_order_token(token)
        assert exc_info.value.direction == token.split("(")[0]

    def test_malformed_token_is_rejected(self) -> None:
        with pytest.raises(InvalidSortDirectionError) as exc_info:
            parse_order_token("name")
        assert exc_info.value.direction == "name"

    def test_later_tokens_override_earlier_ones(self) -> None:
        spec = build_sort_spec(["asc(a)", "desc(b)", "desc(a)"])
        assert spec == {"a": -1, "b": -1}
        assert list(spec) == ["a", "b"]

    def test_empty_order_is_empty_spec(self) -> None:
        assert build_sort_spec(None) == {}
        assert build_sort_spec([]) == {}


class TestComparator:
    """Values order across types the way the store does."""

    def test_type_order(self) -> None:
        ordered = [None, 1, 2.5, "a", "b", False, True, [1], {"k": 1}]
        assert compare_values(True, 1) > 0
        assert compare_values(0, False) < 0
        for left, right in zip(ordered, ordered[1:]):
            assert compare_values(left, right) <= 0, (left, right)
            assert compare_values(right, left) >= 0, (left, right)

    def test_lists_compare_elementwise_then_by_length(self) -> None:
        assert compare_values([1, 2], [1, 3]) < 0
        assert compare_values([1, 2], [1, 2, 0]) < 0
        assert compare_values([1, 2], [1, 2]) == 0

    def test_composite_sort(self) -> None:
        docs = [
            {"g": 1, "n": "b"},
            {"g": 2, "n": "a"},
            {"g": 1, "n": "a"},
            {"n": "z"},
        ]
        result = sort_documents(docs, build_sort_spec(["desc(g)", "asc(n)"]))
        assert result == [
            {"g": 2, "n": "a"},
            {"g": 1, "n": "a"},
            {"g": 1, "n": "b"},
            {"n": "z"},
        ]

    def test_sort_without_spec_keeps_order(self) -> None:
        docs = [{"a": 2}, {"a": 1}]
        assert sort_documents(docs, {}) == docs


class TestProjection:
    """Projections always include id and never mutate caller input."""

    def test_id_is_appended(self) -> None:
        fields = ["a"]
        assert build_projection(fields) == {"a": 1, "id": 1}
        assert fields == ["a"]

    def test_id_is_not_duplicated(self) -> None:
        assert build_projection(["id", "a"]) == {"id": 1, "a": 1}

    def test_no_fields_means_everything(self) -> None:
        assert build_projection(None) is None
        assert build_projection([]) is None
        assert apply_projection(DOCS[0], None) is DOCS[0]

    def test_apply_projection_keeps_only_present_fields(self) -> None:
        projection = build_projection(["a", "missing", "meta.score"])
        assert apply_projection(DOCS[0], projection) == {
            "a": 1,
            "meta": {"score": 10},
            "id": "1",
        }


class TestQueryTranslation:
    """Query mappings become store conditions."""

    def test_empty_query_matches_everything(self) -> None:
        assert _ids(None) == ["1", "2", "3", "4"]
        assert _ids({}) == ["1", "2", "3", "4"]

    def test_equality_and_nested_fields(self) -> None:
        assert _ids({"b": "yes"}) == ["1", "3"]
        assert _ids({"a": 2, "b": "no"}) == ["2"]
        assert _ids({"meta.score": 5}) == ["3"]
        assert _ids({"meta": {"score": 20}}) == ["2"]

    def test_comparison_operators_skip_other_types(self) -> None:
        assert _ids({"a": {"$gt": 1}}) == ["2", "3"]
        assert _ids({"a": {"$gte": 1, "$lt": 3}}) == ["1", "2"]
        assert _ids({"a": {"$lte": "z"}}) == ["4"]

    def test_membership_and_existence(self) -> None:
        assert _ids({"a": {"$in": [1, 3]}}) == ["1", "3"]
        assert _ids({"a": {"$nin": [1, 3]}}) == ["2", "4"]
        assert _ids({"tags": {"$exists": True}}) == ["1", "2"]
        assert _ids({"tags": {"$exists": False}}) == ["3", "4"]
        assert _ids({"b": {"$ne": "yes"}}) == ["2", "4"]

    def test_booleans_never_equal_numbers(self) -> None:
        docs = [{"id": "num", "a": 1}, {"id": "flag", "a": True}, {"id": "zero", "a": 0.0}]

        def ids(query: Any) -> list[str]:
            condition = translate_query(query)
            return [doc["id"] for doc in docs if condition(doc)]

        assert ids({"a": True}) == ["flag"]
        assert ids({"a": 1}) == ["num"]
        assert ids({"a": {"$eq": False}}) == []
        assert ids({"a": {"$eq": 0}}) == ["zero"]
        assert ids({"a": {"$ne": 1}}) == ["flag", "zero"]
        assert ids({"a": {"$in": [1]}}) == ["num"]
        assert ids({"a": {"$in": [True]}}) == ["flag"]
        assert ids({"a": {"$nin": [1, 0]}}) == ["flag"]

    def test_list_values_compare_elementwise(self) -> None:
        docs = [{"id": "short", "a": [2]}, {"id": "long", "a": [1, 5]}, {"id": "n", "a": 9}]

        def ids(query: Any) -> list[str]:
            condition = translate_query(query)
            return [doc["id"] for doc in docs if condition(doc)]

        assert ids({"a": {"$gt": [1]}}) == ["short", "long"]
        assert ids({"a": {"$lt": [2]}}) == ["long"]
        assert ids({"a": {"$gte": [2], "$lte": [2]}}) == ["short"]
        assert ids({"a": [1, 5]}) == ["long"]
        assert ids({"a": {"$in": [[2], 9]}}) == ["short", "n"]

    def test_regex_and_size(self) -> None:
        assert _ids({"b": {"$regex": "^y"}}) == ["1", "3"]
        assert _ids({"b": {"$regex": {"pattern": "^N", "options": "i"}}}) == ["2"]
        assert _ids({"tags": {"$size": 2}}) == ["1"]

    def test_logical_operators(self) -> None:
        assert _ids({"$or": [{"a": 1}, {"a": 3}]}) == ["1", "3"]
        assert _ids({"$and": [{"b": "yes"}, {"a": {"$gt": 1}}]}) == ["3"]
        assert _ids({"$not": {"b": "yes"}}) == ["2", "4"]

    @pytest.mark.parametrize(
        "query",
        [
            {"a": {"$near": 1}},
            {"a": {"$in": 1}},
            {"$or": []},
            {"$not": [{"a": 1}]},
            {"$xor": [{"a": 1}]},
            {"a": {"$gt": 1, "plain": 2}},
            {"b": {"$regex": "("}},
            {"": 1},
            ["a"],
        ],
    )
    def test_invalid_queries_raise(self, query: Any) -> None:
        with pytest.raises(InvalidQueryError):
            translate_query(query)


class TestWindow:
    """Skip applies before limit."""

    def test_skip_then_limit(self) -> None:
        docs = [{"n": n} for n in range(5)]
        assert apply_window(docs, 2, 1) == [{"n": 1}, {"n": 2}]
        assert apply_window(docs, 0, 0) == docs

    def test_validate_window(self) -> None:
        assert validate_window(None, None) == (0, 0)
        assert validate_window(3, 2) == (3, 2)
        with pytest.raises(InvalidQueryError):
            validate_window(-1, None)
        with pytest.raises(InvalidQueryError):
            validate_window(None, "2")  # type: ignore[arg-type]
