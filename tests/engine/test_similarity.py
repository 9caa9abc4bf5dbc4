"""Tests for title similarity groups."""
from types import SimpleNamespace

import pytest

from app.engine.similarity import classify_similarity, similarity_groups_for_items


@pytest.mark.parametrize(
    "title,group",
    [
        ("5th Battalion", "military_battalion"),
        ("2nd Regiment", "military_regiment"),
        ("3rd Infantry Division", "military_infantry"),
        ("Central Station", "transportation_station"),
        ("central station", "transportation_station"),
        ("Heathrow Airport", "transportation_airport"),
        ("Port Authority Bus Terminal", "transportation_terminal"),
        ("Acme Tower", "building_tower"),
        ("Empire State Building", "building_building"),
        ("Big Ben, London", "geographic_london"),
        ("Louvre (Paris)", "geographic_paris"),
        ("Times Square, New York City", "geographic_new_york_city"),
        ("Pizza", None),
        ("Cafe, Springfield", None),
    ],
)
def test_classify_similarity(title: str, group) -> None:
    assert classify_similarity(title) == group


def test_first_matching_rule_wins() -> None:
    assert classify_similarity("5th Battalion Memorial") == "military_battalion"
    assert classify_similarity("Grand Central Station, New York") == (
        "transportation_station"
    )
    assert classify_similarity("Tower Bridge, London") == "building_tower"


@pytest.mark.parametrize("title", [None, "", "   ", 42])
def test_empty_titles_have_no_group(title) -> None:
    assert classify_similarity(title) is None


def test_similarity_groups_for_items() -> None:
    items = [
        SimpleNamespace(id="a", title="7th Battalion"),
        SimpleNamespace(id="b", title="Pizza"),
        SimpleNamespace(id="c", title=None),
    ]
    assert similarity_groups_for_items(items) == {
        "a": "military_battalion",
        "b": None,
    }
