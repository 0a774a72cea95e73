# TaskPilot configuration
# Override via config.yaml, environment variables, or CLI args.

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

from .persister import DEFAULT_DELAY_MS
from .store import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config.yaml"


@dataclass
class Config:
    """Runtime configuration for the TaskPilot server and workspace."""

    # Storage
    db_path: str = DEFAULT_DB_PATH
    api_url: Optional[str] = None  # None = local file store

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 3000

    # Quiet period before pending changes are written
    debounce_ms: int = DEFAULT_DELAY_MS

    log_level: str = "INFO"

    def apply_env(self):
        """Environment variables win over the config file."""
        if os.environ.get("TASKPILOT_DB"):
            self.db_path = os.environ["TASKPILOT_DB"]
        if os.environ.get("TASKPILOT_LOG_LEVEL"):
            self.log_level = os.environ["TASKPILOT_LOG_LEVEL"]

    def resolve_paths(self):
        self.db_path = str(Path(self.db_path).expanduser().resolve())
        self.log_level = str(self.log_level).upper()

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        if path is None:
            path = os.environ.get("TASKPILOT_CONFIG")
        cfg_path = Path(path) if path else CONFIG_PATH
        known = {f.name for f in fields(cls)}
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (OSError, yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        return cfg
