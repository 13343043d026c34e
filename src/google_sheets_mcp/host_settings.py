"""Registration of the server in the MCP host settings file.

The host file (``~/.claude/settings.json``) is shared with other tools, so
only the ``mcpServers["google-sheets"]`` key is ever touched. The file is
rewritten only when that entry actually changes. An unreadable file is
copied aside before it is replaced.
"""

import json
import logging
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from google_sheets_mcp.config import HOST_SERVER_KEY

logger = logging.getLogger(__name__)


def server_entry() -> dict[str, Any]:
    """Launch entry for this server under the current interpreter."""
    return {"command": sys.executable, "args": ["-m", "google_sheets_mcp"]}


def _load_settings(settings_path: Path) -> dict[str, Any] | None:
    """Read the host file; None means it exists but is not a JSON object."""
    if not settings_path.exists():
        return {}
    try:
        with open(settings_path) as f:
            settings = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning(f"Could not parse {settings_path}: {e.msg}")
        return None
    if not isinstance(settings, dict):
        logger.warning(f"{settings_path} does not hold a JSON object")
        return None
    return settings


def create_backup(source: Path) -> Path:
    """Copy a file to a timestamped sibling and return the copy's path."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = source.parent / f"{source.name}.backup_{timestamp}"
    shutil.copy2(source, backup_path)
    logger.info(f"Created backup at {backup_path}")
    return backup_path


def _write_settings(settings_path: Path, settings: dict[str, Any]) -> None:
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    with open(settings_path, "w") as f:
        f.write(json.dumps(settings, indent=2) + "\n")


def register_server(settings_path: Path, entry: dict[str, Any] | None = None) -> bool:
    """Set the server entry if it is absent or different.

    Args:
        settings_path: Host settings file.
        entry: Launch entry; defaults to :func:`server_entry`.

    Returns:
        True if the file was written, False if the entry was already current.
    """
    entry = entry if entry is not None else server_entry()
    settings = _load_settings(settings_path)
    if settings is None:
        create_backup(settings_path)
        settings = {}

    servers = settings.get("mcpServers")
    if not isinstance(servers, dict):
        servers = {}
        settings["mcpServers"] = servers

    if servers.get(HOST_SERVER_KEY) == entry:
        return False

    servers[HOST_SERVER_KEY] = entry
    _write_settings(settings_path, settings)
    logger.info(f"Registered '{HOST_SERVER_KEY}' MCP server in {settings_path}")
    return True


def unregister_server(settings_path: Path) -> bool:
    """Remove the server entry, leaving every other key intact.

    Returns:
        True if an entry was removed.
    """
    if not settings_path.exists():
        return False

    settings = _load_settings(settings_path)
    if settings is None:
        return False
    servers = settings.get("mcpServers")
    if not isinstance(servers, dict) or HOST_SERVER_KEY not in servers:
        return False

    del servers[HOST_SERVER_KEY]
    _write_settings(settings_path, settings)
    logger.info(f"Removed '{HOST_SERVER_KEY}' MCP server from {settings_path}")
    return True
