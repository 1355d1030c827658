from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import yaml

from hikma_export.auth import AuthResolver, StaticTokenAuthResolver
from hikma_export.codecs import DEFAULT_CODECS
from hikma_export.database import RecordStore, SQLiteRecordStore
from hikma_export.storage import LocalObjectStore, ObjectStore

DEFAULT_CONFIG: Dict[str, object] = {
    "backend": "local",
    "db_path": "hikma.db",
    "storage_dir": "./exports",
    "bucket": "exports",
    "public_base_url": "http://127.0.0.1:8000",
    "signing_key": None,
    "default_enterprise_name": "HikmaCash",
    "codecs": dict(DEFAULT_CODECS),
    "api_tokens": {},
    "supabase": {
        "url": None,
        "key": None,
    },
}

CONFIG_PATH = Path("config.yaml")

# Environment variable -> (section, key); section None means top level.
ENV_OVERRIDES = {
    "SUPABASE_URL": ("supabase", "url"),
    "SUPABASE_SERVICE_ROLE_KEY": ("supabase", "key"),
    "HIKMA_SIGNING_KEY": (None, "signing_key"),
    "HIKMA_DB_PATH": (None, "db_path"),
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged or merged[key] is None:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def _apply_env(config: Dict[str, object], environ) -> Dict[str, object]:
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        if section is None:
            config[key] = value
        else:
            config.setdefault(section, {})[key] = value
    return config


def load_config(path: Path | str | None = None, environ=None) -> Dict[str, object]:
    """Load the YAML config at ``path`` merged over ``DEFAULT_CONFIG``.

    A missing file yields the defaults. Environment overrides are applied last.
    """
    environ = os.environ if environ is None else environ
    target = Path(path or environ.get("HIKMA_CONFIG") or CONFIG_PATH)
    data: Dict[str, object] = {}
    if target.exists():
        with target.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {target} must contain a mapping")
    config = _merge_defaults(data, DEFAULT_CONFIG)
    return _apply_env(config, environ)


@dataclass
class Backend:
    auth: AuthResolver
    store: RecordStore
    object_store: ObjectStore


def build_backend(config: Dict[str, object]) -> Backend:
    """Wire the identity, record store and object store for ``config['backend']``."""
    kind = config.get("backend", "local")
    if kind == "local":
        return Backend(
            auth=StaticTokenAuthResolver(config.get("api_tokens") or {}),
            store=SQLiteRecordStore(config["db_path"]),
            object_store=LocalObjectStore(
                config["storage_dir"],
                signing_key=config.get("signing_key") or "",
                base_url=config["public_base_url"],
            ),
        )
    if kind == "supabase":
        from hikma_export.supabase_backend import (
            SupabaseAuthResolver,
            SupabaseObjectStore,
            SupabaseRecordStore,
            get_supabase_client,
        )

        supabase_cfg = config.get("supabase") or {}
        client = get_supabase_client(supabase_cfg.get("url"), supabase_cfg.get("key"))
        return Backend(
            auth=SupabaseAuthResolver(client),
            store=SupabaseRecordStore(client),
            object_store=SupabaseObjectStore(client, bucket=config.get("bucket", "exports")),
        )
    raise ValueError(f"Unknown backend: {kind!r}")
