"""Configuration loading and service wiring.

Config is a JSON file (see tools/config.json.example) validated with
jsonschema. Missing sections fall back to DEFAULT_CONFIG.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Optional

import jsonschema

from warden import events
from warden.hashing import DEFAULT_ROUNDS, BcryptHasher
from warden.service import CredentialService
from warden.stores import InMemoryUserStore, SQLiteUserStore, UserStore
from warden.stores.sqlite import DEFAULT_DB_PATH

logger = logging.getLogger("warden.config")

DEFAULT_CONFIG: dict[str, Any] = {
    "store": {"backend": "sqlite", "db_path": DEFAULT_DB_PATH},
    "hashing": {"bcrypt_rounds": DEFAULT_ROUNDS},
    "auth": {"normalize_emails": True},
    "events": {"enabled": True, "path": events.DEFAULT_EVENT_LOG},
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "store": {
            "type": "object",
            "properties": {
                "backend": {"type": "string", "enum": ["sqlite", "memory"]},
                "db_path": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
        "hashing": {
            "type": "object",
            "properties": {
                "bcrypt_rounds": {"type": "integer", "minimum": 4, "maximum": 31},
            },
            "additionalProperties": False,
        },
        "auth": {
            "type": "object",
            "properties": {"normalize_emails": {"type": "boolean"}},
            "additionalProperties": False,
        },
        "events": {
            "type": "object",
            "properties": {
                "enabled": {"type": "boolean"},
                "path": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
    },
}


class ConfigError(Exception):
    """Configuration file is missing, unreadable or invalid."""


def merge_defaults(config: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in config.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    try:
        jsonschema.validate(config, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ConfigError(f"Invalid config: {e.message}") from e
    return merge_defaults(config)


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """Load, validate and default-fill a JSON config file.

    ``None`` returns the defaults.
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config not found at {path}")

    try:
        with open(path) as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    return validate_config(raw)


def build_store(config: dict[str, Any]) -> UserStore:
    store_config = config["store"]
    if store_config["backend"] == "memory":
        logger.info("UserStore initialized: in-memory")
        return InMemoryUserStore()

    store = SQLiteUserStore(db_path=store_config["db_path"])
    logger.info(f"UserStore initialized: {store_config['db_path']}")
    return store


def build_service(config: dict[str, Any]) -> CredentialService:
    """Wire store, hasher and events from a loaded config."""
    events_config = config["events"]
    events.configure(events_config["path"] if events_config["enabled"] else None)

    return CredentialService(
        store=build_store(config),
        hasher=BcryptHasher(rounds=config["hashing"]["bcrypt_rounds"]),
        normalize_emails=config["auth"]["normalize_emails"],
    )
