# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKDECK_APP_NAME": "App display name (default: taskdeck).",
    "TASKDECK_LOG_LEVEL": "Log file level (default: INFO). The console only shows warnings.",
    # Storage (gitignored)
    "TASKDECK_DATA_DIR": "Local data directory (default: .local/taskdeck).",
    "TASKDECK_STORAGE_BACKEND": "Key-value backend: sqlite (default) or json.",
    "TASKDECK_STORAGE_PATH": (
        "Backend file (default: <data_dir>/taskdeck.sqlite3 or <data_dir>/taskdeck.json)."
    ),
    "TASKDECK_STORAGE_KEY": "Key the state blob is stored under (default: td.todos.v2).",
}
