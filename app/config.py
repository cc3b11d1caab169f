"""
Application configuration and paths.

Every value can be overridden with a FACESYNC_* environment variable.
"""
import os
from pathlib import Path

# Application identity
APP_NAME = 'FaceSync'
APP_VERSION = '0.1.0'

# Server configuration
SERVER_HOST = os.environ.get('FACESYNC_HOST', '127.0.0.1')
SERVER_PORT = int(os.environ.get('FACESYNC_PORT', '5112'))

# Development mode substitutes a fixed video duration instead of probing
DEV_MODE = os.environ.get('FACESYNC_ENV', 'production') == 'development'
MOCK_DURATION_SECONDS = 88.0

# Application home (database, logs)
APP_HOME_DIR = Path(os.environ.get('FACESYNC_HOME', str(Path.home() / '.facesync')))
LOG_DIR = APP_HOME_DIR / 'logs'
LOG_LEVEL = 'DEBUG' if DEV_MODE else os.environ.get('FACESYNC_LOG_LEVEL', 'INFO')

# Database configuration
DATABASE_PATH = APP_HOME_DIR / 'facesync.db'
DATABASE_URL = f'sqlite+aiosqlite:///{DATABASE_PATH}'

# Artifact layout. Keys stored on records are relative to DATA_ROOT so the
# local tree and the remote store share one structure.
DATA_ROOT = Path(os.environ.get('FACESYNC_DATA_ROOT', str(Path.home())))
DATA_DIR = DATA_ROOT / 'facesync_data'
MODEL_DIR = DATA_DIR / 'face2face' / 'temp'  # inference service working dir
TTS_PRODUCT_DIR = MODEL_DIR
TTS_ROOT = DATA_DIR / 'voice' / 'data'
TTS_TRAIN_DIR = TTS_ROOT / 'origin_audio'

# Remote storage
REMOTE_STORAGE_ENABLED = os.environ.get('FACESYNC_REMOTE_STORAGE_ENABLED', 'false').lower() == 'true'
REMOTE_STORAGE_TYPE = os.environ.get('FACESYNC_REMOTE_STORAGE_TYPE', 'api')  # 'api' or 's3'
REMOTE_STORAGE_API_ENDPOINT = os.environ.get('FACESYNC_REMOTE_STORAGE_API_ENDPOINT', 'http://localhost:3000')
REMOTE_STORAGE_ENDPOINT = os.environ.get('FACESYNC_REMOTE_STORAGE_ENDPOINT', 'http://localhost:9000')
REMOTE_STORAGE_REGION = os.environ.get('FACESYNC_REMOTE_STORAGE_REGION', 'us-east-1')
REMOTE_STORAGE_BUCKET = os.environ.get('FACESYNC_REMOTE_STORAGE_BUCKET', 'facesync-data')
REMOTE_STORAGE_ACCESS_KEY = os.environ.get('FACESYNC_REMOTE_STORAGE_ACCESS_KEY', '')
REMOTE_STORAGE_SECRET_KEY = os.environ.get('FACESYNC_REMOTE_STORAGE_SECRET_KEY', '')

# What happens to a finished remote result: 'local' keeps the downloaded
# copy, 'remote' deletes it once the duration has been probed.
RESULT_RECONCILE_MODE = os.environ.get('FACESYNC_RESULT_RECONCILE_MODE', 'local')

# Storage retry policy
STORAGE_RETRY_ATTEMPTS = 3

# Inference services
FACE2FACE_URL = os.environ.get('FACESYNC_FACE2FACE_URL', 'http://127.0.0.1:8383/easy')
TTS_URL = os.environ.get('FACESYNC_TTS_URL', 'http://127.0.0.1:18180')
HTTP_TIMEOUT = float(os.environ.get('FACESYNC_HTTP_TIMEOUT', '60'))

# Scheduler
POLL_INTERVAL_SECONDS = float(os.environ.get('FACESYNC_POLL_INTERVAL', '2'))

# Media tools
FFMPEG_BIN = os.environ.get('FACESYNC_FFMPEG', 'ffmpeg')
FFPROBE_BIN = os.environ.get('FACESYNC_FFPROBE', 'ffprobe')
TRANSCODE_ON_IMPORT = os.environ.get('FACESYNC_TRANSCODE_ON_IMPORT', 'true').lower() == 'true'


def ensure_directories():
    """Create required directories if they don't exist."""
    APP_HOME_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    MODEL_DIR.mkdir(parents=True, exist_ok=True)
    TTS_PRODUCT_DIR.mkdir(parents=True, exist_ok=True)
    TTS_TRAIN_DIR.mkdir(parents=True, exist_ok=True)
