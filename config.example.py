# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Environment values only seed a fresh config store; once <data_dir>/config.json exists,
status rules, batch size and sources are edited there (or via console commands).
"""

ENV_VARS = {
    # App / logging
    "VAULT_TASKS_APP_NAME": "App display name (default: vault-tasks).",
    "VAULT_TASKS_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (data dir is gitignored)
    "VAULT_TASKS_VAULT_DIR": "Root folder of the markdown notes (default: current directory).",
    "VAULT_TASKS_DATA_DIR": "Local data directory for logs and config (default: .local/vault-tasks).",
    "VAULT_TASKS_CONFIG_PATH": "Persisted config JSON (default: <data_dir>/config.json).",
    # Paging
    "VAULT_TASKS_BATCH_SIZE": "Tasks per /more page (default: 10, minimum 1).",
    # Sources
    "VAULT_TASKS_ACTIVE_SOURCES": "Comma/space separated, in priority order: streams, daily-notes, folder.",
    "VAULT_TASKS_STREAM_FOLDERS": "Comma/space separated folders or notes for the 'streams' source.",
    "VAULT_TASKS_DAILY_NOTES_FOLDER": "Folder holding date-named daily notes.",
    "VAULT_TASKS_FOLDER_PATH": "Folder for the 'folder' source.",
    "VAULT_TASKS_FOLDER_RECURSIVE": "Include subfolders of the 'folder' source (true/false, default: true).",
    "VAULT_TASKS_ONLY_SHOW_TODAY": "Only scan notes whose name or path carries today's date (true/false).",
    # Top task
    "VAULT_TASKS_ELECTION_SCOPE": "corpus (default, whole vault in background) or window (loaded tasks only).",
    "VAULT_TASKS_CONTENDER_MODE": "none, group (default) or group_and_next.",
    # Change watcher
    "VAULT_TASKS_WATCH_INTERVAL_SECONDS": "Vault polling interval (default: 5.0).",
}
