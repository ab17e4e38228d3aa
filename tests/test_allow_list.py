"""Tests for the conversation allow-list."""

import pytest

from whatbot.allow_list import AllowList
from whatbot.models import AllowListEntry


def test_empty_selection_rejected() -> None:
    allow = AllowList()
    with pytest.raises(ValueError, match="at least one contact"):
        allow.configure([])
    assert not allow.configured


def test_single_entry() -> None:
    allow = AllowList()
    allow.configure([AllowListEntry("c1", "Sam")])

    assert allow.is_enabled("c1") is True
    assert allow.is_enabled("c2") is False
    assert allow.display_name("c1") == "Sam"
    assert allow.display_name("c2") is None


def test_not_enabled_before_configure() -> None:
    allow = AllowList()
    assert allow.is_enabled("c1") is False
    assert allow.entries == ()


def test_reconfigure_rejected() -> None:
    allow = AllowList()
    allow.configure([AllowListEntry("c1", "Sam")])

    with pytest.raises(RuntimeError):
        allow.configure([AllowListEntry("c2", "Kim")])
    assert allow.is_enabled("c2") is False


def test_duplicate_ids_collapse() -> None:
    allow = AllowList()
    allow.configure([AllowListEntry("c1", "Sam"), AllowListEntry("c1", "Sam")])
    assert len(allow.entries) == 1


def test_accepts_generator() -> None:
    allow = AllowList()
    allow.configure(AllowListEntry(f"c{i}", f"N{i}") for i in range(3))
    assert [e.conversation_id for e in allow.entries] == ["c0", "c1", "c2"]
