# =============================================================================
# sync_core/config/settings.py
# Process-wide Settings (Supabase endpoint, local storage, reachability)
# =============================================================================
"""
Settings are read once at startup and never mutated afterwards.

Expected secrets in .streamlit/secrets.toml:

    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

    [sync]                      # optional
    data_dir = "local_data"
    credential_key = "supabase_refresh_token"
    probe_hosts = ["8.8.8.8:53", "1.1.1.1:53"]

Environment variables SUPABASE_URL, SUPABASE_KEY and SYNC_DATA_DIR take
precedence over the file.
"""

from __future__ import annotations
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

from sync_core.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SECRETS_PATH = Path(".streamlit") / "secrets.toml"
DEFAULT_DATA_DIR = Path("local_data")


@dataclass(frozen=True)
class SyncSettings:
    """Immutable configuration for one sync context."""
    supabase_url: str = ""
    supabase_key: str = ""
    data_dir: Path = DEFAULT_DATA_DIR
    credential_key: str = "supabase_refresh_token"

    # Reachability probing
    probe_hosts: Tuple[Tuple[str, int], ...] = (
        ("8.8.8.8", 53),        # Google DNS
        ("1.1.1.1", 53),        # Cloudflare DNS
    )
    connection_timeout: float = 5.0
    check_interval_online: float = 30.0
    check_interval_offline: float = 10.0

    # Remote table names
    users_table: str = "users"
    orders_table: str = "orders"
    snapshots_table: str = "restaurant_owner_snapshots"
    restaurants_table: str = "restaurants"

    @property
    def cache_db_path(self) -> Path:
        return Path(self.data_dir) / "sync_cache.db"

    @property
    def credential_db_path(self) -> Path:
        return Path(self.data_dir) / "credentials.db"

    @property
    def has_remote(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def require_remote(self) -> None:
        """Raise ConfigurationError unless the remote endpoint is configured."""
        if not self.supabase_url:
            raise ConfigurationError("Supabase URL is not configured", config_key="supabase.url")
        if not self.supabase_key:
            raise ConfigurationError("Supabase API key is not configured", config_key="supabase.key")


def parse_host(entry: str) -> Tuple[str, int]:
    """Split a "host:port" entry into (host, port)."""
    host, sep, port = str(entry).rpartition(":")
    if not sep or not host:
        raise ConfigurationError(f"Probe host must be \"host:port\", got {entry!r}", config_key="sync.probe_hosts")
    try:
        return host, int(port)
    except ValueError:
        raise ConfigurationError(f"Invalid port in probe host {entry!r}", config_key="sync.probe_hosts")


def _read_secrets(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.debug(f"No secrets file at {path}")
        return {}
    try:
        return toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigurationError(f"Could not read secrets file: {e}", config_key=str(path))


def load_settings(secrets_path: Optional[Path] = None) -> SyncSettings:
    """
    Build SyncSettings from the secrets file and environment.

    Args:
        secrets_path: Path to a secrets.toml (default: .streamlit/secrets.toml)

    Returns:
        Frozen SyncSettings
    """
    secrets = _read_secrets(Path(secrets_path) if secrets_path else DEFAULT_SECRETS_PATH)
    supabase = secrets.get("supabase", {})
    sync = secrets.get("sync", {})

    url = os.getenv("SUPABASE_URL") or supabase.get("url", "")
    key = os.getenv("SUPABASE_KEY") or supabase.get("key", "")
    data_dir = os.getenv("SYNC_DATA_DIR") or sync.get("data_dir") or DEFAULT_DATA_DIR

    kwargs: Dict[str, Any] = {
        "supabase_url": url,
        "supabase_key": key,
        "data_dir": Path(data_dir),
    }
    for name in (
        "credential_key",
        "connection_timeout",
        "check_interval_online",
        "check_interval_offline",
        "users_table",
        "orders_table",
        "snapshots_table",
        "restaurants_table",
    ):
        if name in sync:
            kwargs[name] = sync[name]
    if "probe_hosts" in sync:
        kwargs["probe_hosts"] = tuple(parse_host(entry) for entry in sync["probe_hosts"])

    settings = SyncSettings(**kwargs)
    logger.info(f"Settings loaded. Remote configured: {settings.has_remote}, data dir: {settings.data_dir}")
    return settings
