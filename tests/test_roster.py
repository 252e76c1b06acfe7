"""Tests for roster seeding, import and export."""

import json

import pytest

from core.exceptions import ValidationError
from services.roster import (
    default_roster,
    export_roster_document,
    load_roster_file,
    parse_roster_document,
    seed_session,
)


def test_default_roster_numbers_entities_from_one():
    participants, gifts = default_roster(3)

    assert [p.name for p in participants] == ["Employee 1", "Employee 2", "Employee 3"]
    assert [g.number for g in gifts] == [1, 2, 3]
    assert not any(p.has_drawn for p in participants)


def test_parse_ignores_match_flags():
    document = {
        "participants": [{"id": 1, "name": " Ann ", "has_drawn": True}],
        "gifts": [{"id": 1, "number": 4, "description": "Mug", "owner_id": 1, "revealed": True}],
    }

    participants, gifts = parse_roster_document(document)

    assert participants[0].name == "Ann"
    assert participants[0].has_drawn is False
    assert gifts[0].owner_id is None
    assert gifts[0].revealed is False


def test_parse_accepts_first_release_export():
    document = {
        "people": [{"id": "7", "name": "Bob", "hasDrawn": True, "photoUrl": "data:image/png;base64,AA"}],
        "gifts": [{"id": 3, "description": "Tea", "ownerId": 7}],
    }

    participants, gifts = parse_roster_document(document)

    assert participants[0].id == 7
    assert participants[0].photo_url == "data:image/png;base64,AA"
    assert gifts[0].number == 3
    assert gifts[0].owner_id is None


def test_parse_allows_unequal_pools():
    participants, gifts = parse_roster_document({
        "participants": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}],
        "gifts": [{"id": 1, "number": 1}],
    })
    assert (len(participants), len(gifts)) == (2, 1)


@pytest.mark.parametrize("document", [
    [],
    {"participants": []},
    {"participants": [{"id": 1, "name": ""}], "gifts": []},
    {"participants": [{"id": -1, "name": "A"}], "gifts": []},
    {"participants": [{"id": True, "name": "A"}], "gifts": []},
    {"participants": [{"id": "--5", "name": "A"}], "gifts": []},
    {"participants": [], "gifts": [{"id": "1", "number": "4.5"}]},
    {"participants": [{"id": 1, "name": "A"}, {"id": 1, "name": "B"}], "gifts": []},
    {"participants": [], "gifts": [{"id": 1, "number": "many"}]},
    {"participants": [], "gifts": [{"id": 1, "number": 1, "description": "x" * 501}]},
    {"participants": ["Ann"], "gifts": []},
])
def test_parse_rejects_invalid_documents(document):
    with pytest.raises(ValidationError):
        parse_roster_document(document)


def test_export_can_be_imported_again():
    participants, gifts = default_roster(2)
    participants[0].has_drawn = True
    gifts[0].owner_id = 1

    document = export_roster_document(participants, gifts)
    assert document["participants"][0]["has_drawn"] is True
    assert "exported_at" in document

    again, again_gifts = parse_roster_document(json.loads(json.dumps(document)))
    assert [p.name for p in again] == ["Employee 1", "Employee 2"]
    assert again_gifts[0].owner_id is None


def test_load_roster_file(tmp_path):
    path = tmp_path / "roster.json"
    path.write_text(json.dumps({
        "participants": [{"id": 1, "name": "Ann"}],
        "gifts": [{"id": 1, "number": 10, "description": "Scarf"}],
    }), encoding="utf-8")

    participants, gifts = load_roster_file(str(path))

    assert participants[0].name == "Ann"
    assert gifts[0].description == "Scarf"


def test_load_roster_file_errors(tmp_path):
    with pytest.raises(ValidationError):
        load_roster_file(str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_roster_file(str(broken))


def test_seed_session_uses_generated_roster_without_file():
    record = seed_session(None, size=4)
    assert len(record.participants) == 4
    assert record.active_participant_id is None
