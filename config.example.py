# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TASKSYNC_APP_NAME": "App display name (default: tasksync).",
    "TASKSYNC_LOG_LEVEL": "Console logging level (default: INFO).",
    "TASKSYNC_DATA_DIR": "Local data directory for logs (default: .local/tasksync).",
    # Backend
    "TASKSYNC_BACKEND": "firebase | offline | auto (default: auto = firebase when configured).",
    # Firebase
    "TASKSYNC_FIREBASE_API_KEY": "Web API key used by the Firebase Auth REST API.",
    "TASKSYNC_FIREBASE_PROJECT_ID": "Firebase / Google Cloud project id hosting Firestore.",
    "TASKSYNC_FIREBASE_AUTH_EMULATOR_HOST": (
        "Auth emulator host:port (FIREBASE_AUTH_EMULATOR_HOST is accepted too)."
    ),
    "FIRESTORE_EMULATOR_HOST": "Firestore emulator host:port (read by the Firestore SDK).",
    "TASKSYNC_HTTP_TIMEOUT_SECONDS": "Timeout for Auth REST calls (default: 15).",
}
