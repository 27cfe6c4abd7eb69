"""Configuration manager: YAML file merged over defaults, then environment overrides."""

import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


# (environment variable, section, key, converter)
ENV_OVERRIDES = (
    ("SHOWDOWN_USERNAME", "showdown", "username", str),
    ("SHOWDOWN_PASSWORD", "showdown", "password", str),
    ("SHOWDOWN_SERVER_URL", "showdown", "server_url", str),
    ("SHOWDOWN_LOGIN_URL", "showdown", "login_url", str),
    ("HTTP_HOST", "server", "host", str),
    ("HTTP_PORT", "server", "port", int),
    ("HTTP_DEBUG", "server", "debug", _parse_bool),
    ("STATIC_ASSETS", "server", "static_dir", str),
    ("DB_PATH", "storage", "db_path", str),
    ("FLUSH_INTERVAL_SECONDS", "storage", "flush_interval_seconds", float),
    ("PAGE_SIZE", "storage", "page_size", int),
    ("CODEC", "codec", "factory", str),
    ("LOG_LEVEL", "logging", "level", str),
)


class Config:
    """Configuration manager that loads from YAML and merges with defaults."""

    DEFAULTS = {
        "showdown": {
            "server_url": "wss://sim3.psim.us/showdown/websocket",
            "login_url": "https://play.pokemonshowdown.com/api/login",
            "username": "",
            "password": "",
            "max_chat_rooms": 15,
            "roomlist_interval_seconds": 60,
            "connect_timeout_seconds": 10,
            "max_backoff_seconds": 60,
        },
        "server": {
            "host": "0.0.0.0",
            "port": 8080,
            "debug": False,
            "static_dir": "./borygon-canary-client/build",
        },
        "storage": {
            "db_path": "db.json",
            "flush_interval_seconds": 60,
            "page_size": 50,
        },
        "codec": {
            "factory": "canary.line_codec:ShowdownLineCodec",
        },
        "ingest": {
            "queue_size": 10000,
            "enqueue_timeout_seconds": 5.0,
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(self, config_path=None, environ=None):
        self._config = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r") as f:
                    user_config = yaml.safe_load(f)

                if user_config and isinstance(user_config, dict):
                    self._config = self._deep_merge(self._config, user_config)
            except FileNotFoundError:
                pass
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)

        if environ is not None:
            self._apply_env(environ)

    @classmethod
    def from_env(cls, environ=None):
        """Load the file named by CONFIG_PATH, then apply environment overrides."""
        environ = os.environ if environ is None else environ
        return cls(environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH), environ=environ)

    def _apply_env(self, environ):
        for name, section, key, convert in ENV_OVERRIDES:
            raw = environ.get(name)
            if raw is None or raw == "":
                continue
            try:
                self._config.setdefault(section, {})[key] = convert(raw)
            except ValueError:
                logger.warning("Ignoring invalid value for %s: %r", name, raw)

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def get(self, key, default=None):
        """Get a top-level config key."""
        return self._config.get(key, default)

    def __getitem__(self, key):
        return self._config[key]

    def __contains__(self, key):
        return key in self._config
