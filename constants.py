# Constant variables - PVWA API settings
DEFAULT_BASE_URL = "https://pvwa.example.com"
DEFAULT_USERNAME = "svc-session-checker"
DEFAULT_MONTHS = "1-12"
DEFAULT_OUTPUT_DIR = "downloaded_recordings"

# Authentication provider used in the Logon path
AUTH_PROVIDER = "CyberArk"
LOGON_PATH = f"/auth/{AUTH_PROVIDER}/Logon"
RECORDINGS_PATH = "/recordings"
PLAY_PATH = "/recordings/{session_id}/Play/"

# The server never returns more than this many recordings per request
PAGE_SIZE = 1000

# 32 KiB per chunk when streaming videos to disk
CHUNK_SIZE = 32 * 1024

# Month queries are built for this year unless told otherwise
REFERENCE_YEAR = 2024

PASSWORD_ENV_VAR = "PVWA_PASSWORD"

VIDEO_EXTENSION = ".avi"
METADATA_EXTENSION = ".json"
JSON_INDENT = 4
