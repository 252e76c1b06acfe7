"""Tests for the stored session format and its migrations."""

import pytest

from core import DrawStage
from database.models import SessionRecord
from services.session_schema import SCHEMA_VERSION, SchemaError, dump_session, load_session
from tests.helpers import make_roster


def _document(**overrides):
    participants, gifts = make_roster(3)
    document = dump_session(SessionRecord(participants, gifts))
    document.update(overrides)
    return document


def test_dump_and_load_preserve_session():
    participants, gifts = make_roster(3)
    participants[0].has_drawn = True
    gifts[1].owner_id = 1
    gifts[1].revealed = True
    record = SessionRecord(
        participants, gifts, stage=DrawStage.GIFT_REVEALED,
        active_participant_id=2, active_gift_id=3, pending_message="Well done",
    )

    loaded = load_session(dump_session(record))

    assert loaded.participants == record.participants
    assert loaded.gifts == record.gifts
    assert loaded.stage is DrawStage.GIFT_REVEALED
    assert (loaded.active_participant_id, loaded.active_gift_id) == (2, 3)
    assert loaded.pending_message == "Well done"


def test_dump_marks_current_version():
    assert _document()["schema_version"] == SCHEMA_VERSION


def test_interrupted_roulette_resumes_idle():
    loaded = load_session(_document(stage="selecting_participant", active_participant_id=1))

    assert loaded.stage is DrawStage.IDLE
    assert loaded.active_participant_id is None


def test_unknown_stage_resumes_idle():
    assert load_session(_document(stage="dancing")).stage is DrawStage.IDLE


def test_claimed_active_gift_falls_back_to_gift_choice():
    document = _document(stage="gift_revealed", active_participant_id=1, active_gift_id=2, pending_message="hi")
    document["gifts"][1]["owner_id"] = 3

    loaded = load_session(document)

    assert loaded.stage is DrawStage.AWAITING_GIFT_CHOICE
    assert loaded.active_participant_id == 1
    assert loaded.active_gift_id is None
    assert loaded.pending_message == ""


def test_drawn_active_participant_resumes_idle():
    document = _document(stage="participant_announced", active_participant_id=1)
    document["gifts"][0]["owner_id"] = 1

    loaded = load_session(document)

    assert loaded.stage is DrawStage.IDLE
    assert loaded.active_participant_id is None


def test_matching_is_repaired_from_gift_ownership():
    document = _document()
    document["participants"][0]["has_drawn"] = True
    document["gifts"][0]["owner_id"] = 2
    document["gifts"][1]["owner_id"] = 2
    document["gifts"][2]["owner_id"] = 77

    loaded = load_session(document)

    assert [p.has_drawn for p in loaded.participants] == [False, True, False]
    assert [g.owner_id for g in loaded.gifts] == [2, None, None]
    assert [g.revealed for g in loaded.gifts] == [True, False, False]


def test_malformed_entities_are_dropped_and_fields_defaulted():
    document = _document()
    document["participants"].append({"id": "x", "name": "Bad"})
    document["participants"].append({"id": 1, "name": "Duplicate"})
    document["gifts"].append({"id": 9, "extra": "ignored"})

    loaded = load_session(document)

    assert [p.id for p in loaded.participants] == [1, 2, 3]
    extra = loaded.gifts[-1]
    assert (extra.id, extra.number, extra.description) == (9, 9, "")


def test_first_release_document_is_migrated():
    legacy = {
        "people": [
            {"id": 1, "name": "Ann", "hasDrawn": True, "photoUrl": "data:image/png;base64,AA"},
            {"id": 2, "name": "Bob", "hasDrawn": False},
        ],
        "gifts": [
            {"id": 1, "number": 5, "description": "Socks", "revealed": True, "ownerId": 1},
            {"id": 2, "number": 6, "description": "Mug", "revealed": False, "ownerId": None},
        ],
        "savedStage": "PERSON_SELECTED",
        "savedCurrentPersonId": 2,
        "savedCurrentGiftId": None,
        "savedAiMessage": "",
    }

    loaded = load_session(legacy)

    assert loaded.participants[0].photo_url == "data:image/png;base64,AA"
    assert loaded.participants[0].has_drawn is True
    assert loaded.gifts[0].owner_id == 1
    assert loaded.stage is DrawStage.AWAITING_GIFT_CHOICE
    assert loaded.active_participant_id == 2


def test_first_release_finished_stage_becomes_idle():
    loaded = load_session({"people": [], "gifts": [], "savedStage": "FINISHED"})
    assert loaded.stage is DrawStage.IDLE


@pytest.mark.parametrize("data", [None, [], "text", {"schema_version": 0}, {"schema_version": "2"}])
def test_unreadable_documents_raise(data):
    with pytest.raises(SchemaError):
        load_session(data)


def test_newer_schema_is_refused():
    with pytest.raises(SchemaError):
        load_session(_document(schema_version=SCHEMA_VERSION + 1))


def test_round_without_unclaimed_gift_resumes_idle():
    document = _document(stage="awaiting_gift_choice", active_participant_id=3)
    document["gifts"] = document["gifts"][:2]
    document["gifts"][0]["owner_id"] = 1
    document["gifts"][1]["owner_id"] = 2

    loaded = load_session(document)

    assert loaded.stage is DrawStage.IDLE
    assert loaded.active_participant_id is None
