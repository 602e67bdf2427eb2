"""
SVI settings
Configuration for the Smart Visual Inspection recording station.

Values come from the environment (a local .env file is loaded first).
Camera capture and recording happen client-side via getUserMedia /
MediaRecorder; the server only proxies Drive and the records backend.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# ── Directories ──
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.environ.get("SVI_DATA_DIR", os.path.join(BASE_DIR, "data"))
VIDEOS_DIR = os.environ.get("SVI_VIDEOS_DIR", os.path.join(DATA_DIR, "videos"))
LOG_DIR = os.environ.get("SVI_LOG_DIR", os.path.join(BASE_DIR, "logs"))
LOG_LEVEL = os.environ.get("SVI_LOG_LEVEL", "INFO")

# ── Flask settings ──
FLASK_HOST = os.environ.get("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.environ.get("FLASK_PORT", "3000"))
FLASK_DEBUG = os.environ.get("FLASK_DEBUG", "0") == "1"
MAX_CONTENT_LENGTH = 2 * 1024 * 1024 * 1024  # 2GB video uploads

# production | development
SVI_ENV = os.environ.get("SVI_ENV", "development")
COOKIE_SECURE = SVI_ENV != "development"

# ── Records backend ──
# sql | rest | mongo
RECORDS_BACKEND = os.environ.get("SVI_RECORDS_BACKEND", "sql")
API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:4000")

MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.environ.get("MONGO_DB_NAME", "smart-visual-inspection")
MONGO_COLLECTION = os.environ.get("MONGO_COLLECTION", "records")
MONGO_TIMEOUT_MS = 10_000

SQLALCHEMY_DATABASE_URI = os.environ.get(
    "SQLALCHEMY_DATABASE_URI",
    f"sqlite:///{os.path.join(DATA_DIR, 'svi.db')}",
)
SQLALCHEMY_TRACK_MODIFICATIONS = False

# ── Google Drive ──
GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID", "")
DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/drive.metadata.readonly",
]
