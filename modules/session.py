"""
Recording session controller
Idle -> Recording -> Idle lifecycle of one inspection session: recorder
start, item / remark accumulation, then on stop the video upload (Drive or
local) and the records merge-and-save.

One controller per capture station; it holds no module-level state. Call
dispose() when the station shuts down.
"""
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Callable, Optional

from modules.camera import (
    DEFAULT_MIME_TYPE,
    RECORDER_TIMESLICE_MS,
    choose_mime_type,
    extension_for,
)
from modules.entries import DEFAULT_VIDEO_EXT, Item, Remark, SessionEntry
from modules.errors import SviError

logger = logging.getLogger("svi.session")

IDLE = "idle"
RECORDING = "recording"
STORAGE_MODES = ("local", "drive")


@dataclass(frozen=True)
class DriveFolder:
    id: str
    name: str


@dataclass
class StopResult:
    key: str
    entry: SessionEntry
    upload_error: Optional[str] = None
    save_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.upload_error is None and self.save_error is None


class ChunkRecorder:
    """In-memory recorder; a capture source pushes encoded chunks into it."""

    def __init__(self, mime_type: Optional[str] = None):
        self.mime_type = mime_type or DEFAULT_MIME_TYPE
        self.chunks: list[bytes] = []
        self.recording = False
        self.timeslice_ms = None

    def start(self, timeslice_ms: int = RECORDER_TIMESLICE_MS):
        self.chunks = []
        self.timeslice_ms = timeslice_ms
        self.recording = True

    def push(self, chunk: bytes):
        if self.recording and chunk:
            self.chunks.append(chunk)

    def stop(self) -> bytes:
        self.recording = False
        return b"".join(self.chunks)


def _random_suffix(k: int = 6) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=k))


class RecordingSession:
    def __init__(self, client, recorder_factory: Callable = ChunkRecorder,
                 is_supported: Optional[Callable[[str], bool]] = None,
                 storage_mode: str = "local",
                 clock: Callable[[], float] = time.time,
                 monotonic: Callable[[], float] = time.monotonic):
        self.client = client
        self.recorder_factory = recorder_factory
        self.is_supported = is_supported or (lambda mime: True)
        self.clock = clock
        self.monotonic = monotonic
        self.storage_mode = storage_mode
        self.drive_folder: Optional[DriveFolder] = None
        self.last_error: Optional[str] = None
        self._reset()

    def _reset(self):
        self.state = IDLE
        self.session_id: Optional[str] = None
        self.session_name = ""
        self.active_item_id: Optional[str] = None
        self.recorder = None
        self._started_at: Optional[float] = None
        self._items: dict[str, Item] = {}

    # ── State ──

    @property
    def is_recording(self) -> bool:
        return self.state == RECORDING

    @property
    def items(self) -> list[Item]:
        return list(self._items.values())

    @property
    def item_ids(self) -> list[str]:
        return list(self._items)

    @property
    def active_item(self) -> Optional[Item]:
        return self._items.get(self.active_item_id) if self.active_item_id else None

    def _offset_ms(self) -> int:
        now = self.monotonic()
        start = self._started_at if self._started_at is not None else now
        return max(0, int((now - start) * 1000))

    def set_storage(self, mode: str, folder: Optional[DriveFolder] = None):
        if mode not in STORAGE_MODES:
            raise ValueError(f"Unknown storage mode: {mode}")
        self.storage_mode = mode
        self.drive_folder = folder

    def set_session_name(self, name: str):
        self.session_name = name or ""

    # ── Transitions ──

    def start_session(self) -> Optional[str]:
        if self.is_recording:
            return None
        self._reset()
        self.last_error = None
        self.session_id = f"session-{int(self.clock() * 1000)}"
        self._started_at = self.monotonic()
        self.state = RECORDING

        mime_type = choose_mime_type(self.is_supported)
        try:
            self.recorder = self.recorder_factory(mime_type)
            self.recorder.start(RECORDER_TIMESLICE_MS)
        except Exception as e:
            logger.warning("Recorder unavailable, recording without video: %s", e)
            self.recorder = None

        logger.info("Started %s (mime=%s)", self.session_id, mime_type or "default")
        return self.session_id

    def add_item(self, name: str) -> Optional[str]:
        item_name = (name or "").strip()
        if not self.is_recording or not item_name or not self.session_name.strip():
            return None
        item_id = f"item-{int(self.clock() * 1000)}-{_random_suffix()}"
        while item_id in self._items:
            item_id = f"item-{int(self.clock() * 1000)}-{_random_suffix()}"
        self._items[item_id] = Item(name=item_name, added_at=self._offset_ms())
        self.active_item_id = item_id
        return item_id

    def select_item(self, item_id: str) -> bool:
        if item_id not in self._items:
            return False
        self.active_item_id = item_id
        return True

    def add_remark(self, text: str) -> Optional[Remark]:
        remark_text = (text or "").strip()
        item = self.active_item
        if not self.is_recording or not remark_text or item is None:
            return None
        if not item.name.strip():
            return None
        remark = Remark(text=remark_text, ts=self._offset_ms())
        item.remarks.append(remark)
        return remark

    def stop_session(self) -> Optional[StopResult]:
        if not self.is_recording:
            return None
        self.state = IDLE
        session_id = self.session_id
        items = [it for it in self._items.values() if not it.is_blank]

        video_ext = DEFAULT_VIDEO_EXT
        drive_file = None
        upload_error = None
        recorder = self.recorder
        self.recorder = None
        if recorder is not None:
            mime_type = recorder.mime_type or DEFAULT_MIME_TYPE
            try:
                data = recorder.stop()
            except Exception as e:
                logger.warning("Recorder flush failed for %s: %s", session_id, e)
                data = None
                upload_error = f"Recorder failed: {e}"
            if data is not None:
                video_ext = extension_for(mime_type)
                drive_file, upload_error = self._upload(session_id, video_ext, data, mime_type)

        if self.storage_mode == "drive":
            entry = SessionEntry(
                session_id=session_id,
                items=items,
                video_source="drive",
                drive_file_id=(drive_file or {}).get("id"),
                drive_web_view_link=(drive_file or {}).get("webViewLink"),
            )
        else:
            entry = SessionEntry(session_id=session_id, items=items,
                                 video_source="local", video_ext=video_ext)
        key = self.session_name.strip() or session_id

        save_error = None
        try:
            existing = self.client.get_records() or {}
            merged = {**existing, key: entry.to_dict()}
            self.client.put_records(merged)
            logger.info("Saved %s as %r with %d items", session_id, key, len(items))
        except SviError as e:
            logger.warning("Saving %s failed: %s", session_id, e)
            save_error = e.message or "Failed to save"
        finally:
            self._reset()

        self.last_error = save_error or upload_error
        return StopResult(key=key, entry=entry, upload_error=upload_error, save_error=save_error)

    def _upload(self, session_id: str, ext: str, data: bytes, mime_type: str):
        if self.storage_mode == "drive":
            folder_id = self.drive_folder.id if self.drive_folder else None
            try:
                return self.client.upload_drive(f"{session_id}.{ext}", data, mime_type, folder_id), None
            except SviError as e:
                logger.warning("Drive upload of %s failed: %s", session_id, e)
                return None, e.message or "Drive upload failed"
        try:
            self.client.upload_local(session_id, ext, data, mime_type)
        except SviError as e:
            # local upload is best-effort
            logger.warning("Local upload of %s failed: %s", session_id, e)
        return None, None

    def dispose(self):
        """Stop an active recorder without saving."""
        if self.recorder is not None:
            try:
                self.recorder.stop()
            except Exception as e:
                logger.warning("Recorder stop on dispose failed: %s", e)
        self._reset()
