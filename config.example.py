# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
The auth token is never configured here: it is obtained via /login and kept in the
credential store file (see TASKPILOT_CREDENTIALS_PATH).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKPILOT_APP_NAME": "App display name (default: taskpilot).",
    "TASKPILOT_LOG_LEVEL": "Console logging level (default: INFO).",
    # Backend
    "TASKPILOT_API_BASE_URL": "REST backend base URL (default: https://api.grahak24.com).",
    "TASKPILOT_HTTP_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "TASKPILOT_HTTP_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 30).",
    # Paths (gitignored)
    "TASKPILOT_DATA_DIR": "Local data directory (default: .local/taskpilot).",
    "TASKPILOT_CREDENTIALS_PATH": (
        "Session credentials JSON path (default: <data_dir>/credentials.json)."
    ),
    # Client-side rules
    "TASKPILOT_MIN_DUE_LEAD_SECONDS": "Minimum distance between now and a new due time (default: 60).",
    "TASKPILOT_SEARCH_MIN_CHARS": "Shortest user-search query sent to the backend (default: 3).",
    "TASKPILOT_SEARCH_DEBOUNCE_SECONDS": "User-search debounce delay (default: 0.4).",
    # Reminders / console
    "TASKPILOT_REMINDER_POLL_SECONDS": "Reminder loop polling interval (default: 15).",
    "TASKPILOT_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
}
