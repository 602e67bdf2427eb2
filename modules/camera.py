"""
Camera and recorder settings
Camera capture runs in the browser (getUserMedia + MediaRecorder); the
record page and the Python session controller share these rules.
"""
from typing import Callable, Iterable, Optional

# Most capable first
PREFERRED_MIME_TYPES = (
    "video/webm;codecs=vp9,opus",
    "video/webm;codecs=vp8,opus",
    "video/webm",
)
DEFAULT_MIME_TYPE = "video/webm"
RECORDER_TIMESLICE_MS = 1000


def choose_mime_type(is_supported: Callable[[str], bool],
                     preferred: Iterable[str] = PREFERRED_MIME_TYPES) -> Optional[str]:
    """First preferred type the recorder supports, or None for its default."""
    for mime in preferred:
        try:
            if is_supported(mime):
                return mime
        except Exception:
            continue
    return None


def extension_for(mime_type: Optional[str]) -> str:
    mime = (mime_type or DEFAULT_MIME_TYPE).lower()
    if "webm" in mime:
        return "webm"
    if "mp4" in mime:
        return "mp4"
    return "webm"


class CameraSelection:
    """Selected input device; an explicit device that fails falls back to the default."""

    def __init__(self, device_id: Optional[str] = None):
        self.device_id = device_id
        self.error: Optional[str] = None
        self.active = False

    @property
    def constraints(self) -> dict:
        if self.device_id:
            video = {"deviceId": {"exact": self.device_id}}
        else:
            video = {"facingMode": "environment"}
        return {"video": video, "audio": False}

    def update_devices(self, device_ids: list[str]):
        if device_ids and self.device_id not in device_ids:
            self.device_id = device_ids[0]

    def acquired(self):
        self.active = True
        self.error = None

    def failed(self, message: str):
        self.active = False
        self.error = message or "Camera error"
        if self.device_id:
            self.device_id = None

    def __repr__(self):
        return f"CameraSelection(device_id={self.device_id!r}, active={self.active})"
