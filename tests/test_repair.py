from __future__ import annotations

from minutes_sync.repair import dedupe_people, fix_topics, join_people, looks_char_split, repair_topics, sort_people


def _fragment(*topics: str) -> list[str]:
    out: list[str] = []
    for i, topic in enumerate(topics):
        if i:
            out.append("")
        out.extend(topic)
    return out


def test_repair_reconstructs_character_split_topics() -> None:
    fragments = _fragment("Intro", "Review of action items")
    assert looks_char_split(fragments)
    assert repair_topics(fragments) == ["Intro", "Review of action items"]


def test_repair_leaves_healthy_lists_alone() -> None:
    assert repair_topics(["Budget", "Roadmap"]) == ["Budget", "Roadmap"]
    assert repair_topics([]) == []
    # Five entries is not enough to call it corruption.
    assert not looks_char_split(["a", "b", "c", "d", "e"])


def test_repair_splits_long_merged_entries_on_commas() -> None:
    fragments = list("alpha, beta, gamma, delta, epsilon and zeta")
    assert repair_topics(fragments) == ["alpha", "beta", "gamma", "delta", "epsilon and zeta"]


def test_fix_topics_joins_splits_and_trims() -> None:
    topics = ["a", "b", "c", "  Hello   world!  ", "Line one\nLine two", "", "--"]
    assert fix_topics(topics) == ["abc", "Hello world", "Line one", "Line two"]


def test_people_helpers() -> None:
    assert dedupe_people(["Bob", "bob", " Alice ", ""]) == ["Bob", "Alice"]
    assert sort_people(["carol", "Bob", "alice"]) == ["alice", "Bob", "carol"]
    assert join_people(["carol", "Bob", "bob"]) == "Bob, carol"
