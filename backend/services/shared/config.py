"""Configuration for BeatCut.

Settings come from a YAML file with dot-notation access.  ``.env`` files are
loaded in priority order:
  1. User-level ~/.beatcut/.env  (lowest priority)
  2. Local backend/.env          (overrides user-level)
  3. Environment variables       (highest priority)

There is no module-level instance: the application builds one ``Config`` and
passes it to whatever needs it (see ``backend.main.create_app``).
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_SETTINGS_PATH = Path(__file__).parent.parent.parent / "config" / "settings.yaml"


class Config:
    """YAML-backed configuration with dot-notation access and env lookup."""

    def __init__(self, config_path: str):
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(path) as f:
            self._data: dict = yaml.safe_load(f)
        if not isinstance(self._data, dict):
            raise ValueError(f"Config file must be a YAML mapping, got: {type(self._data)}")
        self.path = path
        self._load_env()

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from an in-memory mapping (no file, no .env loading)."""
        if not isinstance(data, dict):
            raise ValueError(f"Config data must be a mapping, got: {type(data)}")
        cfg = cls.__new__(cls)
        cfg._data = data
        cfg.path = None
        return cfg

    # ── private ──────────────────────────────────────────────────────────────

    def _load_env(self) -> None:
        """Load .env files in priority order (user-level → local)."""
        user_env = Path.home() / ".beatcut" / ".env"
        local_env = Path(__file__).parent.parent.parent / ".env"
        if user_env.exists():
            load_dotenv(user_env, override=False)
        if local_env.exists():
            load_dotenv(local_env, override=True)

    # ── public ───────────────────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        """Dot-notation access into the YAML tree.

        Example::

            config.get("render.fps")                    # 30
            config.get("beat_detection.threshold")      # 0.3
            config.get("missing.key", "fallback")       # "fallback"
        """
        keys = key.split(".")
        val: Any = self._data
        for k in keys:
            if isinstance(val, dict) and k in val:
                val = val[k]
            else:
                return default
        return val

    def get_path(self, key: str) -> Path:
        """Return a config value as a Path object.

        Raises KeyError if the key does not exist.
        """
        val = self.get(key)
        if val is None:
            raise KeyError(f"Config key not found: {key}")
        return Path(str(val))

    def get_env(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return an environment variable value."""
        return os.environ.get(name, default)

    def as_dict(self) -> dict:
        """Return a shallow copy of the underlying settings mapping."""
        return dict(self._data)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load settings from ``config_path``, ``$BEATCUT_CONFIG`` or the bundled default."""
    path = config_path or os.environ.get("BEATCUT_CONFIG") or str(DEFAULT_SETTINGS_PATH)
    return Config(path)
