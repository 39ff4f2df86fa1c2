# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Never commit a real session file: it holds a bearer token and lives under the gitignored data dir.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKDECK_APP_NAME": "App display name (default: taskdeck).",
    "TASKDECK_LOG_LEVEL": "Console logging level (default: INFO).",
    # Remote API
    "TASKDECK_API_BASE_URL": "Backend base URL including /api (default: http://localhost:8080/api).",
    "TASKDECK_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "TASKDECK_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 20).",
    # Paths (gitignored)
    "TASKDECK_DATA_DIR": "Local data directory (default: .local/taskdeck).",
    "TASKDECK_SESSION_PATH": "Saved token + user profile (default: <data_dir>/session.json).",
    "TASKDECK_LOG_FILE": "Full debug log (default: <data_dir>/taskdeck.log).",
}
