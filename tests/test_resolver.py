import pytest

from actual_skill.errors import ResolutionError
from actual_skill.resolver import (
    find_by_name,
    find_entity,
    name_map,
    require_resolution,
    try_resolution,
)

RECORDS = [
    {"id": "p1", "name": "Costco"},
    {"id": "p2", "name": "p1"},
    {"id": "p3", "name": "Grocer"},
    {"id": "p4", "name": "grocer"},
]


def test_id_wins_over_name_collision():
    assert find_entity("p1", RECORDS)["id"] == "p1"


def test_name_is_case_insensitive():
    assert find_entity("costco", RECORDS)["id"] == "p1"
    assert find_entity("COSTCO", RECORDS)["id"] == "p1"


def test_duplicate_names_pick_first():
    assert find_entity("GROCER", RECORDS)["id"] == "p3"


def test_id_match_is_verbatim():
    assert find_entity("P3", RECORDS) is None


def test_records_not_mutated():
    before = [dict(r) for r in RECORDS]
    find_entity("grocer", RECORDS)
    assert RECORDS == before


def test_accepts_generators():
    assert find_entity("p3", (r for r in RECORDS))["name"] == "Grocer"


def test_require_resolution_names_token():
    with pytest.raises(ResolutionError) as exc:
        require_resolution("Nope", RECORDS, "Category")
    assert str(exc.value) == "Category not found: Nope"
    assert exc.value.token == "Nope"
    assert exc.value.kind == "Category"


def test_try_resolution():
    assert try_resolution("Nope", RECORDS) is None
    assert try_resolution(None, RECORDS) is None
    assert try_resolution("costco", RECORDS)["id"] == "p1"


def test_find_by_name_ignores_ids():
    assert find_by_name("p3", RECORDS) is None
    assert find_by_name("p1", RECORDS)["id"] == "p2"


def test_name_map():
    assert name_map(RECORDS[:2]) == {"p1": "Costco", "p2": "p1"}
