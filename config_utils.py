# config_utils.py

import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, List

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30
DEFAULT_DATABASE   = "chat"
DEFAULT_CONTAINER  = "history"
DEFAULT_LEASES     = "leases"
RETENTION_MODES    = ("thread", "flat")

SEARCH_ENDPOINT_TEMPLATE = "https://{name}.search.windows.net"

class ConfigError(Exception):
    """Raised when a job is missing the settings it needs to run."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__("missing configuration: " + ", ".join(self.missing))

@dataclass(frozen=True)
class HistoryConfig:
    search_endpoint_name: Optional[str] = None
    search_api_key: Optional[str] = None
    search_index_name: Optional[str] = None
    db_connection_string: Optional[str] = None
    retention_days: int = DEFAULT_RETENTION_DAYS
    retention_mode: str = "thread"
    database_name: str = DEFAULT_DATABASE
    container_name: str = DEFAULT_CONTAINER
    lease_container_name: str = DEFAULT_LEASES
    dry_run: bool = False

    @property
    def search_endpoint(self) -> Optional[str]:
        if not self.search_endpoint_name:
            return None
        return SEARCH_ENDPOINT_TEMPLATE.format(name=self.search_endpoint_name)

    def require_search(self) -> None:
        missing = []
        if not self.search_endpoint_name:
            missing.append("AZURE_SEARCH_NAME")
        if not self.search_api_key:
            missing.append("AZURE_SEARCH_API_KEY")
        if not self.search_index_name:
            missing.append("AZURE_SEARCH_INDEX")
        if missing:
            raise ConfigError(missing)

    def require_database(self) -> None:
        if not self.db_connection_string:
            raise ConfigError(["DOCUMENTDB"])

def _retention_days(raw: Optional[str]) -> int:
    if raw is None or raw.strip() == "":
        return DEFAULT_RETENTION_DAYS
    try:
        days = int(raw)
    except ValueError:
        logger.warning(f"HISTORY_RETENTION_DAYS={raw!r} is not an integer, using {DEFAULT_RETENTION_DAYS}")
        return DEFAULT_RETENTION_DAYS
    if days <= 0:
        logger.warning(f"HISTORY_RETENTION_DAYS={days} must be positive, using {DEFAULT_RETENTION_DAYS}")
        return DEFAULT_RETENTION_DAYS
    return days

def _retention_mode(raw: Optional[str]) -> str:
    mode = (raw or "thread").strip().lower()
    if mode not in RETENTION_MODES:
        logger.warning(f"HISTORY_RETENTION_MODE={raw!r} is not one of {RETENTION_MODES}, using 'thread'")
        return "thread"
    return mode

def load_config(environ: Optional[Mapping[str, str]] = None) -> HistoryConfig:
    """Reads app settings once. Never raises; each job checks what it needs."""
    env = os.environ if environ is None else environ
    return HistoryConfig(
        search_endpoint_name=env.get("AZURE_SEARCH_NAME") or None,
        search_api_key=env.get("AZURE_SEARCH_API_KEY") or None,
        search_index_name=env.get("AZURE_SEARCH_INDEX") or None,
        db_connection_string=env.get("DOCUMENTDB") or None,
        retention_days=_retention_days(env.get("HISTORY_RETENTION_DAYS")),
        retention_mode=_retention_mode(env.get("HISTORY_RETENTION_MODE")),
        database_name=env.get("DOCUMENTDB_DATABASE") or DEFAULT_DATABASE,
        container_name=env.get("DOCUMENTDB_CONTAINER") or DEFAULT_CONTAINER,
        lease_container_name=env.get("DOCUMENTDB_LEASE_CONTAINER") or DEFAULT_LEASES,
        dry_run=(env.get("HISTORY_RETENTION_DRY_RUN") or "").strip().lower() in ("1", "true", "yes"),
    )
