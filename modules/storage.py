"""
Local video storage
Raw session videos written to a public directory as <sessionId>.<ext>.
"""
import logging
import os
import re

from modules.entries import DEFAULT_VIDEO_EXT
from modules.errors import StorageIOError, ValidationError

logger = logging.getLogger("svi.storage")

PUBLIC_PREFIX = "/videos"
_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-]*$")


def clean_ext(ext: str) -> str:
    cleaned = re.sub(r"[^a-z0-9]", "", (ext or "").lower())
    return cleaned or DEFAULT_VIDEO_EXT


def check_name(name: str) -> str:
    if not name:
        raise ValidationError("Missing name")
    if not _NAME_RE.match(name) or ".." in name:
        raise ValidationError("Invalid name")
    return name


class LocalVideoStore:
    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def path_for(self, name: str, ext: str) -> str:
        filename = f"{check_name(name)}.{clean_ext(ext)}"
        abs_path = os.path.abspath(os.path.join(self.root, filename))
        # only files directly under the video directory
        if os.path.dirname(abs_path) != self.root:
            raise ValidationError("Invalid name")
        return abs_path

    def public_path(self, name: str, ext: str) -> str:
        return f"{PUBLIC_PREFIX}/{name}.{clean_ext(ext)}"

    def save(self, name: str, ext: str, data: bytes) -> str:
        """Write (or overwrite) the video and return its public path."""
        filepath = self.path_for(name, ext)
        try:
            os.makedirs(self.root, exist_ok=True)
            with open(filepath, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Writing %s failed: %s", filepath, e)
            raise StorageIOError(f"Could not save video: {e}") from e

        logger.info("Saved video %s (%d bytes)", filepath, len(data))
        return self.public_path(name, ext)

    def delete(self, session_id: str, ext: str) -> bool:
        filepath = self.path_for(session_id, ext)
        if not os.path.exists(filepath):
            return False
        try:
            os.remove(filepath)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Removing %s failed: %s", filepath, e)
            raise StorageIOError(f"Could not delete video: {e}") from e

        logger.info("Deleted video %s", filepath)
        return True
