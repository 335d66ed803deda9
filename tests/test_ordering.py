from __future__ import annotations

import copy

import pytest

from minutes_sync.ordering import (
    DEFAULT_ORDER,
    ORDER_MAPPING,
    AgendaItemBuilder,
    apply_workgroup_order,
    remove_empty_values,
)


GAMERS_ORDER = [
    "agenda",
    "status",
    "peoplePresent",
    "facilitator",
    "documenter",
    "narrative",
    "discussionPoints",
    "decisionItems",
    "actionItems",
    "gameRules",
    "leaderboard",
]


def _full_item() -> dict:
    return {
        "leaderboard": ["Alice"],
        "issues": ["lag"],
        "discussion": "talked",
        "gameRules": "no cheating",
        "actionItems": [{"text": "book room", "assignee": "", "status": ""}],
        "meetingTopics": ["Intro"],
        "status": "completed",
        "narrative": "We played.",
        "learningPoints": ["practice"],
        "decisionItems": [{"decision": "play more", "rationale": "", "opposing": "", "effect": ""}],
        "townHallUpdates": "none",
        "discussionPoints": ["Fun."],
        "agenda": "Games",
        "facilitator": "Alice",
        "peoplePresent": ["Bob"],
        "documenter": "Carol",
    }


def _is_subsequence(keys: list, order: list) -> bool:
    it = iter(order)
    return all(k in it for k in keys)


def test_gamers_guild_fields_follow_the_workgroup_order() -> None:
    record = {"workgroup": "Gamers Guild", "agendaItems": [_full_item(), {"status": "carry over", "narrative": "x"}]}
    ordered = remove_empty_values(apply_workgroup_order(record))
    for item in ordered["agendaItems"]:
        assert _is_subsequence(list(item), GAMERS_ORDER)
    assert list(ordered["agendaItems"][0]) == GAMERS_ORDER


def test_unknown_workgroup_uses_default_order_and_forces_lists() -> None:
    record = {"workgroup": "Somebody New", "agendaItems": [{"status": "carry over", "issues": ["a"], "narrative": "n"}]}
    item = apply_workgroup_order(record)["agendaItems"][0]
    assert list(item) == [
        "status",
        "narrative",
        "issues",
        "discussionPoints",
        "actionItems",
        "decisionItems",
        "meetingTopics",
        "learningPoints",
    ]
    assert item["discussionPoints"] == []
    assert DEFAULT_ORDER.index("narrative") < DEFAULT_ORDER.index("issues")


def test_fields_not_in_the_workgroup_order_are_dropped() -> None:
    record = {"workgroup": "Ambassador Town Hall", "agendaItems": [{"narrative": "x", "townHallSummary": "y"}]}
    item = apply_workgroup_order(record)["agendaItems"][0]
    assert "narrative" not in item
    assert item["townHallSummary"] == "y"
    assert ORDER_MAPPING["Ambassador Town Hall"] == ("townHallSummary",)


def test_apply_workgroup_order_does_not_mutate_input_and_unwraps_summary() -> None:
    inner = {"workgroup": "Gamers Guild", "agendaItems": [_full_item()]}
    wrapped = {"id": 7, "summary": inner}
    before = copy.deepcopy(wrapped)
    ordered = apply_workgroup_order(wrapped)
    assert wrapped == before
    assert ordered["workgroup"] == "Gamers Guild"
    assert "id" not in ordered


def test_builder_rejects_undeclared_fields() -> None:
    builder = AgendaItemBuilder().set("status", "completed")
    with pytest.raises(KeyError):
        builder.set("discusionPoints", [])
    assert builder.build() == {"status": "completed"}


def test_remove_empty_values() -> None:
    obj = {"a": "", "b": [], "c": {"d": None}, "e": [{"f": ""}, "x", ""], "g": False, "h": 0, "i": {"j": "k"}}
    assert remove_empty_values(obj) == {"e": ["x"], "g": False, "h": 0, "i": {"j": "k"}}
