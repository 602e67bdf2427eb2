"""
Records store proxy
get-all / upsert-many / delete over the sessionKey -> SessionEntry map.

Backends:
    sql   - local table through Flask-SQLAlchemy (default)
    rest  - generic REST endpoint (<API_BASE_URL>/records), json-server compatible
    mongo - MongoDB collection through pymongo

Upserts replace whole entries. Nothing is transactional: concurrent saves
of one key are last-write-wins, and a failed bulk or fallback loop can
leave some keys applied and others not.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import quote

import requests
from bson import ObjectId
from pymongo import MongoClient, ReplaceOne
from pymongo.errors import BulkWriteError, PyMongoError

from modules.entries import DEFAULT_VIDEO_EXT, SessionEntry, parse_records
from modules.errors import StorageIOError, UpstreamError, ValidationError
from modules.models import SessionRecord, db

logger = logging.getLogger("svi.records")


class RecordsStore:
    """Backend interface; entries are plain dicts in the SessionEntry wire shape."""

    name = "base"

    def get_all(self) -> dict:
        raise NotImplementedError

    def upsert_many(self, entries: dict) -> dict:
        raise NotImplementedError

    def find(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    def remove(self, key: str) -> int:
        raise NotImplementedError


# ── SQL ──

class SqlRecordsStore(RecordsStore):
    name = "sql"

    def get_all(self) -> dict:
        rows = SessionRecord.query.order_by(SessionRecord.id.asc()).all()
        return {r.key: r.to_dict() for r in rows}

    def upsert_many(self, entries: dict) -> dict:
        for key, entry in entries.items():
            record = SessionRecord.query.filter_by(key=key).first()
            if record:
                record.payload = entry
                record.updated_at = datetime.utcnow()
            else:
                db.session.add(SessionRecord(key=key, payload=entry))
        db.session.commit()
        return self.get_all()

    def find(self, key: str) -> Optional[dict]:
        record = SessionRecord.query.filter_by(key=key).first()
        return record.to_dict() if record else None

    def remove(self, key: str) -> int:
        record = SessionRecord.query.filter_by(key=key).first()
        if not record:
            return 0
        db.session.delete(record)
        db.session.commit()
        return 1


# ── REST ──

class RestRecordsStore(RecordsStore):
    name = "rest"

    def __init__(self, base_url: str, http=None):
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()

    @property
    def collection_url(self) -> str:
        return f"{self.base_url}/records"

    def item_url(self, key: str) -> str:
        return f"{self.collection_url}/{quote(key, safe='')}"

    def _request(self, method: str, url: str, **kwargs):
        try:
            return self.http.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning("Records %s %s failed: %s", method, url, e)
            raise UpstreamError(f"Records backend unreachable: {e}") from e

    def _normalize(self, resp) -> dict:
        if not resp.content:
            return {}
        try:
            payload = resp.json()
        except ValueError as e:
            raise UpstreamError("Records backend returned invalid JSON") from e
        result = parse_records(payload)
        if not result.ok:
            logger.warning("Malformed records payload: %s", result.reason)
            raise UpstreamError(f"Malformed records payload: {result.reason}")
        return result.records

    def get_all(self) -> dict:
        resp = self._request("GET", self.collection_url)
        if not resp.ok:
            raise UpstreamError(f"Upstream error {resp.status_code}", resp.status_code)
        return self._normalize(resp)

    def upsert_many(self, entries: dict) -> dict:
        direct = self._request("PUT", self.collection_url, json=entries)
        if direct.ok:
            return self._normalize(direct)
        if direct.status_code not in (404, 405):
            raise UpstreamError(f"Upstream error {direct.status_code}", direct.status_code)

        # No bulk PUT (json-server): upsert key by key, best-effort
        for key, value in entries.items():
            body = {"id": key, **value}
            try:
                existing = self._request("GET", self.item_url(key))
                if existing.ok:
                    resp = self._request("PUT", self.item_url(key), json=body)
                else:
                    resp = self._request("POST", self.collection_url, json=body)
            except UpstreamError as e:
                logger.warning("Upsert of %s skipped: %s", key, e)
                continue
            if not resp.ok:
                logger.warning("Upsert of %s failed %s", key, resp.status_code)
        return self.get_all()

    def find(self, key: str) -> Optional[dict]:
        resp = self._request("GET", self.item_url(key))
        if resp.status_code == 404:
            return None
        if not resp.ok:
            raise UpstreamError(f"Upstream error {resp.status_code}", resp.status_code)
        try:
            doc = resp.json()
        except ValueError as e:
            raise UpstreamError("Records backend returned invalid JSON") from e
        if not isinstance(doc, dict):
            raise UpstreamError("Malformed record payload")
        return {k: v for k, v in doc.items() if k != "id"}

    def remove(self, key: str) -> int:
        resp = self._request("DELETE", self.item_url(key))
        if resp.status_code == 404:
            return 0
        if not resp.ok:
            raise UpstreamError(f"Upstream error {resp.status_code}", resp.status_code)
        return 1


# ── MongoDB ──

def document_id(key: str):
    """ObjectId for keys in canonical ObjectId form, the plain string otherwise.

    Only lowercase hex converts: str(ObjectId) is lowercase, so any other
    spelling would come back from get_all() as a different key.
    """
    if isinstance(key, str) and len(key) == 24 and ObjectId.is_valid(key):
        oid = ObjectId(key)
        if str(oid) == key:
            return oid
    return key


def _id_filter(key: str) -> dict:
    doc_id = document_id(key)
    if isinstance(doc_id, ObjectId):
        return {"_id": {"$in": [doc_id, key]}}
    return {"_id": key}


class MongoRecordsStore(RecordsStore):
    name = "mongo"

    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def connect(cls, uri: str, db_name: str, collection: str, timeout_ms: int = 10_000):
        client = MongoClient(
            uri,
            connectTimeoutMS=timeout_ms,
            serverSelectionTimeoutMS=timeout_ms,
        )
        return cls(client[db_name][collection])

    def get_all(self) -> dict:
        try:
            docs = list(self.collection.find({}))
        except PyMongoError as e:
            logger.warning("Mongo find failed: %s", e)
            raise UpstreamError(f"Records database error: {e}") from e
        records = {}
        for doc in docs:
            key = str(doc["_id"])
            records[key] = {k: v for k, v in doc.items() if k != "_id"}
        return records

    def upsert_many(self, entries: dict) -> dict:
        if entries:
            ops = [
                ReplaceOne({"_id": document_id(key)}, dict(value), upsert=True)
                for key, value in entries.items()
            ]
            try:
                self.collection.bulk_write(ops, ordered=False)
            except BulkWriteError as e:
                keys = list(entries)
                failed = [keys[err["index"]] for err in e.details.get("writeErrors", [])]
                logger.warning("Mongo bulk upsert failed for %s", failed)
                raise UpstreamError(f"Failed to save records: {', '.join(failed)}") from e
            except PyMongoError as e:
                logger.warning("Mongo bulk upsert failed: %s", e)
                raise UpstreamError(f"Records database error: {e}") from e
        return self.get_all()

    def find(self, key: str) -> Optional[dict]:
        try:
            doc = self.collection.find_one(_id_filter(key))
        except PyMongoError as e:
            raise UpstreamError(f"Records database error: {e}") from e
        if not doc:
            return None
        return {k: v for k, v in doc.items() if k != "_id"}

    def remove(self, key: str) -> int:
        try:
            result = self.collection.delete_one(_id_filter(key))
        except PyMongoError as e:
            raise UpstreamError(f"Records database error: {e}") from e
        return result.deleted_count


def create_store(app_config, http=None) -> RecordsStore:
    backend = app_config.get("RECORDS_BACKEND", "sql")
    if backend == "sql":
        return SqlRecordsStore()
    if backend == "rest":
        return RestRecordsStore(app_config["API_BASE_URL"], http=http)
    if backend == "mongo":
        return MongoRecordsStore.connect(
            app_config["MONGO_URI"],
            app_config["MONGO_DB_NAME"],
            app_config["MONGO_COLLECTION"],
            app_config.get("MONGO_TIMEOUT_MS", 10_000),
        )
    raise ValueError(f"Unknown records backend: {backend}")


# ── Delete with video ──

@dataclass
class DeleteResult:
    deleted_count: int
    deleted_drive: Optional[bool] = None
    deleted_local: Optional[bool] = None

    def to_dict(self) -> dict:
        body = {"deletedCount": self.deleted_count}
        if self.deleted_drive is not None:
            body["deletedDrive"] = self.deleted_drive
        if self.deleted_local is not None:
            body["deletedLocal"] = self.deleted_local
        return body


def delete_session(store: RecordsStore, key: str, drive, videos) -> DeleteResult:
    """Remove the session's video (best-effort) and then its metadata."""
    if not key:
        raise ValidationError("Missing id")
    raw = store.find(key)
    if raw is None:
        return DeleteResult(deleted_count=0)

    result = DeleteResult(deleted_count=0)
    try:
        entry = SessionEntry.from_dict(raw)
    except ValidationError as e:
        logger.warning("Record %s is malformed (%s); deleting metadata only", key, e)
        entry = None

    if entry is not None and entry.is_drive:
        result.deleted_drive = bool(entry.drive_file_id) and drive.delete(entry.drive_file_id)
    elif entry is not None and entry.session_id:
        try:
            result.deleted_local = videos.delete(entry.session_id, entry.video_ext or DEFAULT_VIDEO_EXT)
        except (StorageIOError, ValidationError) as e:
            logger.warning("Local video for %s not deleted: %s", key, e)
            result.deleted_local = False

    result.deleted_count = store.remove(key)
    logger.info("Deleted record %s (%s)", key, result.to_dict())
    return result
