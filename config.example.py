# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKSYNC_APP_NAME": "App display name (default: tasksync).",
    "TASKSYNC_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "TASKSYNC_DATA_DIR": "Local data directory for logs (default: .local/tasksync).",
    # Connectors
    "TASKSYNC_CONSOLE_ENABLED": "Enable console connector (true/false, default: true).",
    # Backend
    "TASKSYNC_BACKEND": "memory (default, offline) or firebase.",
    "TASKSYNC_USERS_COLLECTION": "Top-level collection holding per-user documents (default: users).",
    "TASKSYNC_TASKS_COLLECTION": "Per-user task sub-collection (default: tasks).",
    # Firebase
    "TASKSYNC_FIREBASE_API_KEY": "Web API key used for Firebase Auth (fallback: FIREBASE_API_KEY).",
    "TASKSYNC_FIREBASE_PROJECT_ID": "Firestore project id (fallback: GOOGLE_CLOUD_PROJECT).",
    "TASKSYNC_FIREBASE_CREDENTIALS": (
        "Service-account JSON for Firestore (fallback: GOOGLE_APPLICATION_CREDENTIALS; "
        "empty => application default credentials)."
    ),
    "TASKSYNC_AUTH_TIMEOUT_SECONDS": "HTTP timeout for Firebase Auth calls (default: 10).",
}
