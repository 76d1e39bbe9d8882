"""Tests for field authorization and projection.

Focus: allow-list semantics (information hiding), nested path handling.
"""

from entitydb.fields import (
    MISSING,
    authorize_fields,
    delete_path,
    filter_fields,
    get_path,
    parent_paths,
    set_path,
)

ALLOWED = ["name", "address.city"]


def test_no_allow_list_passes_request_through():
    assert authorize_fields(["a", "b.c"], None) == ["a", "b.c"]
    assert authorize_fields(["a"], []) == ["a"]
    assert authorize_fields(None, None) is None


def test_verbatim_allowed_field_is_kept():
    assert authorize_fields(["name"], ALLOWED) == ["name"]


def test_requested_parent_expands_to_allowed_sub_paths():
    """Requesting a parent object yields only its allowed sub-paths.

    Why: address.street must never leak when only address.city is exposed.
    """
    effective = authorize_fields(["address"], ALLOWED)

    assert effective == ["address.city"]
    assert "address" not in effective


def test_sub_path_of_allowed_parent_is_kept():
    assert authorize_fields(["address.city.zip"], ["address.city"]) == ["address.city.zip"]
    assert authorize_fields(["profile.avatar.url"], ["profile"]) == ["profile.avatar.url"]


def test_unauthorized_fields_are_dropped_silently():
    assert authorize_fields(["password", "name"], ALLOWED) == ["name"]


def test_sub_path_expansion_uses_prefix_not_substring():
    assert authorize_fields(["city"], ["address.city", "city.name"]) == ["city.name"]


def test_empty_request_with_allow_list_yields_nothing():
    assert authorize_fields([], ALLOWED) == []


def test_filter_fields_projects_nested_paths():
    doc = {"name": "Ada", "address": {"city": "London", "street": "Baker"}, "secret": 1}

    assert filter_fields(doc, ["name", "address.city"]) == {
        "name": "Ada",
        "address": {"city": "London"},
    }


def test_filter_fields_skips_absent_but_keeps_none():
    doc = {"name": None}

    assert filter_fields(doc, ["name", "missing.path"]) == {"name": None}


def test_filter_fields_none_returns_document():
    doc = {"a": 1}

    assert filter_fields(doc, None) is doc


def test_get_path_handles_lists_and_missing():
    doc = {"tags": [{"name": "x"}], "a": {"b": None}}

    assert get_path(doc, "tags.0.name") == "x"
    assert get_path(doc, "tags.5.name") is MISSING
    assert get_path(doc, "a.b") is None
    assert get_path(doc, "a.b.c", "default") == "default"


def test_set_and_delete_path():
    doc = {"a": 1}

    set_path(doc, "b.c.d", 2)
    assert doc == {"a": 1, "b": {"c": {"d": 2}}}

    delete_path(doc, "b.c.d")
    delete_path(doc, "not.there")
    assert doc == {"a": 1, "b": {"c": {}}}


def test_parent_paths_nearest_first():
    assert parent_paths("a.b.c") == ["a.b", "a"]
    assert parent_paths("a") == []
