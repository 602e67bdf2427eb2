"""
Session entry types
Remark / Item / SessionEntry plus the records-map deserializer.

Backends answer either with a map keyed by session key or with an array
of documents carrying an ``id``; parse_records() folds both shapes into
one map and rejects anything else instead of coercing it.
"""
from dataclasses import dataclass, field
from typing import Optional

from modules.errors import ValidationError

VIDEO_SOURCES = ("local", "drive")
DEFAULT_VIDEO_EXT = "webm"


def _offset(value, what: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{what} must be a number")
    if value < 0:
        raise ValidationError(f"{what} must not be negative")
    return int(value)


@dataclass(frozen=True)
class Remark:
    text: str
    ts: int

    @classmethod
    def from_dict(cls, data: dict) -> "Remark":
        if not isinstance(data, dict):
            raise ValidationError("remark must be an object")
        return cls(text=str(data.get("text") or ""), ts=_offset(data.get("ts"), "remark ts"))

    def to_dict(self) -> dict:
        return {"text": self.text, "ts": self.ts}


@dataclass
class Item:
    name: str
    added_at: int = 0
    remarks: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        if not isinstance(data, dict):
            raise ValidationError("item must be an object")
        remarks = data.get("remarks") or []
        if not isinstance(remarks, list):
            raise ValidationError("item remarks must be a list")
        return cls(
            name=str(data.get("name") or ""),
            added_at=_offset(data.get("addedAt"), "item addedAt"),
            remarks=[Remark.from_dict(r) for r in remarks],
        )

    @property
    def is_blank(self) -> bool:
        return not self.name.strip() and not self.remarks

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "addedAt": self.added_at,
            "remarks": [r.to_dict() for r in self.remarks],
        }


@dataclass
class SessionEntry:
    session_id: str
    items: list = field(default_factory=list)
    video_source: str = "local"
    video_ext: Optional[str] = None
    drive_file_id: Optional[str] = None
    drive_web_view_link: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SessionEntry":
        if not isinstance(data, dict):
            raise ValidationError("session entry must be an object")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise ValidationError("session items must be a list")
        source = data.get("videoSource") or "local"
        if source not in VIDEO_SOURCES:
            raise ValidationError(f"unknown videoSource: {source}")
        return cls(
            session_id=str(data.get("sessionId") or ""),
            items=[Item.from_dict(i) for i in items],
            video_source=source,
            video_ext=data.get("videoExt"),
            drive_file_id=data.get("driveFileId"),
            drive_web_view_link=data.get("driveWebViewLink"),
        )

    @property
    def is_drive(self) -> bool:
        return self.video_source == "drive"

    def to_dict(self) -> dict:
        data = {
            "sessionId": self.session_id,
            "items": [i.to_dict() for i in self.items],
            "videoSource": self.video_source,
        }
        if self.is_drive:
            data["driveFileId"] = self.drive_file_id
            data["driveWebViewLink"] = self.drive_web_view_link
        else:
            data["videoExt"] = self.video_ext or DEFAULT_VIDEO_EXT
        return data


@dataclass
class ParseResult:
    ok: bool
    records: dict = field(default_factory=dict)
    reason: Optional[str] = None

    @classmethod
    def success(cls, records: dict) -> "ParseResult":
        return cls(ok=True, records=records)

    @classmethod
    def failure(cls, reason: str) -> "ParseResult":
        return cls(ok=False, reason=reason)


def _strip_ids(doc: dict) -> dict:
    return {k: v for k, v in doc.items() if k not in ("id", "_id")}


def parse_records(payload) -> ParseResult:
    """Normalize a backend payload into ``{sessionKey: entry_dict}``."""
    if payload is None:
        return ParseResult.success({})

    if isinstance(payload, list):
        pairs = []
        for index, doc in enumerate(payload):
            if not isinstance(doc, dict):
                return ParseResult.failure(f"element {index} is not an object")
            if doc.get("id") in (None, ""):
                return ParseResult.failure(f"element {index} has no id")
            pairs.append((str(doc["id"]), _strip_ids(doc)))
    elif isinstance(payload, dict):
        pairs = []
        for key, doc in payload.items():
            if not isinstance(doc, dict):
                return ParseResult.failure(f"entry {key!r} is not an object")
            pairs.append((str(key), _strip_ids(doc)))
    else:
        return ParseResult.failure(f"unexpected payload type {type(payload).__name__}")

    records = {}
    for key, doc in pairs:
        try:
            records[key] = SessionEntry.from_dict(doc).to_dict()
        except ValidationError as e:
            return ParseResult.failure(f"entry {key!r}: {e.message}")
    return ParseResult.success(records)


def require_records(payload) -> dict:
    """parse_records() for request bodies: malformed input is a ValidationError."""
    result = parse_records(payload)
    if not result.ok:
        raise ValidationError(f"Malformed records: {result.reason}")
    return result.records
