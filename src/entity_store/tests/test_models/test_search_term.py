from types import SimpleNamespace

from entity_store.models.options import FindOptions, QueryFilterOptions, WriteOptions
from entity_store.models.search_term import SearchTerm


def test_new_search_term_from_partial_mapping_leaves_members_unset():
    term = SearchTerm.new_search_term({"field": "x"})

    assert term.field == "x"
    assert term.value is None
    assert term.operator is None


def test_new_search_term_copies_all_present_members():
    term = SearchTerm.new_search_term({"field": "age", "value": "(>18)", "operator": "and"})

    assert term == SearchTerm(field="age", value="(>18)", operator="and")


def test_new_search_term_from_object_attributes():
    term = SearchTerm.new_search_term(SimpleNamespace(field="name", value="bob"))

    assert term == SearchTerm(field="name", value="bob")


def test_new_search_term_ignores_empty_and_unknown_members():
    term = SearchTerm.new_search_term({"field": "", "value": "v", "operator": None, "extra": "ignored"})

    assert term == SearchTerm(value="v")
    assert not hasattr(term, "extra")


def test_new_search_term_keeps_falsy_non_string_values():
    term = SearchTerm.new_search_term({"field": "stock", "value": 0})

    assert term == SearchTerm(field="stock", value=0)


def test_new_search_term_returns_a_copy():
    original = SearchTerm(field="a", value="b")

    copy = SearchTerm.new_search_term(original)

    assert copy == original
    assert copy is not original


def test_option_defaults_are_not_shared():
    first, second = QueryFilterOptions(), QueryFilterOptions()
    first.and_where.append("a = 1")

    assert second.and_where == []
    assert FindOptions().relations == []
    assert WriteOptions().commit is False
