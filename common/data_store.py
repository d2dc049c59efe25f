"""Helpers for resolving where plugins keep their persisted data."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping


def resolve_data_path(
    app_config: Mapping[str, object],
    plugin_settings: Mapping[str, object] | None,
    *,
    base_dir: Path,
    setting: str = "store_path",
    default: str | None = None,
) -> Path | None:
    """Return the data file for a plugin, or ``None`` for in-memory storage.

    Precedence: the environment variable named by ``<setting>_env`` (or the
    app wide ``DATA_STORE["env"]``), then the plugin setting, then the app
    wide ``DATA_STORE["root"]`` joined with ``default``.
    """

    data_store = app_config.get("DATA_STORE", {}) if isinstance(app_config, Mapping) else {}
    data_store = data_store or {}
    plugin_settings = plugin_settings or {}

    env_var = plugin_settings.get(f"{setting}_env") or data_store.get("env")
    env_value = os.getenv(str(env_var)) if env_var else None
    if env_value:
        raw = env_value
    elif setting in plugin_settings:
        raw = plugin_settings.get(setting)
    elif data_store.get("root") and default:
        raw = str(Path(str(data_store["root"])) / default)
    else:
        raw = None

    if raw is None or str(raw).strip() in {"", ":memory:"}:
        return None
    path = Path(str(raw)).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


__all__ = ["resolve_data_path"]
