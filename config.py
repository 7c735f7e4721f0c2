"""Configuration settings for the Autograder client."""

import os
import logging
from typing import Final

# Debug flag: 1 = debug mode (verbose logging), 0 = production mode
DEBUG: Final[int] = int(os.environ.get("AUTOGRADER_DEBUG", "0"))

# --- Backend Settings ---

# Base URL of the hosted backend and its public (anonymous) key.
# Both are required by the CLI; the library takes them as constructor arguments.
SUPABASE_URL: Final[str | None] = os.environ.get("SUPABASE_URL")
SUPABASE_ANON_KEY: Final[str | None] = os.environ.get("SUPABASE_ANON_KEY")

# Base URL of the autograder web app (serves the teacher invite endpoint)
AUTOGRADER_APP_URL: Final[str] = os.environ.get("AUTOGRADER_APP_URL", "https://autograder-nchs.vercel.app")

REST_PATH: Final[str] = "/rest/v1/"
STORAGE_PATH: Final[str] = "/storage/v1/object/"
AUTH_TOKEN_PATH: Final[str] = "/auth/v1/token"
INVITE_TEACHER_PATH: Final[str] = "/api/auth/inviteTeacher"

# --- Storage Settings ---

SUBMISSIONS_BUCKET: Final[str] = "submissions"
# Marker object the storage API creates for otherwise empty folders
PLACEHOLDER_OBJECT_NAME: Final[str] = ".emptyFolderPlaceholder"
LIST_LIMIT: Final[int] = 100
LIST_SORT_COLUMN: Final[str] = "name"
LIST_SORT_ORDER: Final[str] = "asc"

# --- Transport Settings ---

# Seconds before a single HTTP request gives up
REQUEST_TIMEOUT: Final[float] = float(os.environ.get("AUTOGRADER_TIMEOUT", "30"))
# Attempts per request on connection-level failures (1 disables retrying)
MAX_ATTEMPTS: Final[int] = int(os.environ.get("AUTOGRADER_MAX_ATTEMPTS", "3"))
RETRY_INITIAL_DELAY: Final[float] = 1.0

# --- Logging Configuration ---
LOG_DIR: Final[str] = "logs"
# Empty string disables the file handler
LOG_FILE: Final[str] = os.environ.get("AUTOGRADER_LOG_FILE", os.path.join(LOG_DIR, "autograder_client.log"))
LOG_LEVEL = logging.DEBUG if DEBUG else logging.INFO
# Structured log format: timestamp, level, logger, module.function:line, message
LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(module)s.%(funcName)s:%(lineno)d | %(message)s'

# Basic check
if __name__ == "__main__":
    print(f"Debug Mode: {'On' if DEBUG else 'Off'}")
    print(f"Log Level: {logging.getLevelName(LOG_LEVEL)}")
    print(f"Log File: {LOG_FILE or '(disabled)'}")
    print(f"Backend URL: {SUPABASE_URL or '(not set)'}")
    print(f"Anonymous Key Loaded: {'Yes' if SUPABASE_ANON_KEY else 'No'}")
    print(f"App URL: {AUTOGRADER_APP_URL}")
    print(f"Request Timeout: {REQUEST_TIMEOUT}s, Max Attempts: {MAX_ATTEMPTS}")
