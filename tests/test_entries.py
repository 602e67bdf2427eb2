import pytest

from modules.entries import Item, SessionEntry, parse_records, require_records
from modules.errors import ValidationError

from conftest import drive_entry, local_entry


def test_map_payload_passes_through():
    result = parse_records({"Line 1": local_entry()})
    assert result.ok
    assert result.records == {"Line 1": local_entry()}


def test_array_payload_is_folded_by_id():
    payload = [
        {"id": "Line 1", **local_entry()},
        {"id": "Line 2", **drive_entry()},
    ]
    result = parse_records(payload)
    assert result.ok
    assert list(result.records) == ["Line 1", "Line 2"]
    assert "id" not in result.records["Line 1"]
    assert result.records["Line 2"]["driveFileId"] == "file-1"


@pytest.mark.parametrize("payload, reason", [
    ("nope", "unexpected payload type"),
    ([{"sessionId": "s"}], "has no id"),
    ([1, 2], "not an object"),
    ({"k": [1]}, "not an object"),
])
def test_malformed_payloads_are_rejected(payload, reason):
    result = parse_records(payload)
    assert not result.ok
    assert reason in result.reason


def test_none_is_an_empty_map():
    assert parse_records(None).records == {}


def test_negative_offsets_are_rejected():
    entry = local_entry(items=[{"name": "x", "addedAt": -5, "remarks": []}])
    result = parse_records({"k": entry})
    assert not result.ok
    assert "addedAt" in result.reason

    with pytest.raises(ValidationError):
        require_records({"k": local_entry(items=[{"name": "x", "remarks": [{"text": "t", "ts": -1}]}])})


def test_unknown_video_source_is_rejected():
    with pytest.raises(ValidationError):
        SessionEntry.from_dict({"sessionId": "s", "videoSource": "ftp"})


def test_to_dict_emits_only_the_matching_video_fields():
    local = SessionEntry(session_id="s", video_source="local", drive_file_id="ignored").to_dict()
    assert local["videoExt"] == "webm"
    assert "driveFileId" not in local

    drive = SessionEntry(session_id="s", video_source="drive", video_ext="mp4").to_dict()
    assert "videoExt" not in drive
    assert drive["driveFileId"] is None


def test_blank_item_detection():
    assert Item(name="  ").is_blank
    assert not Item(name="Widget").is_blank
    assert not Item.from_dict({"name": "", "remarks": [{"text": "t", "ts": 1}]}).is_blank
