"""Blueprint registration helpers."""

from __future__ import annotations

import importlib
import importlib.util
import pkgutil
from pathlib import Path
from typing import Iterable

from flask import Blueprint, Flask

from common.logging import get_logger

logger = get_logger("formulaforge.app")


def _iter_blueprints(package: str = "plugins") -> Iterable[Blueprint]:
    """Collect blueprints exported by ``<package>.<plugin>.api`` modules.

    A module may export a ``blueprints`` list or a single ``bp``. Plugins
    without an ``api`` module contribute nothing.
    """

    module_path = Path(__file__).resolve().parent.parent / package
    if not module_path.exists():
        return []
    blueprints: list[Blueprint] = []
    for module_info in pkgutil.iter_modules([str(module_path)]):
        if not module_info.ispkg:
            continue
        dotted = f"{package}.{module_info.name}.api"
        if importlib.util.find_spec(dotted) is None:
            continue
        module = importlib.import_module(dotted)
        exported = getattr(module, "blueprints", None) or [getattr(module, "bp", None)]
        blueprints.extend(bp for bp in exported if bp is not None)
    return blueprints


def register_plugin_blueprints(app: Flask) -> None:
    for bp in _iter_blueprints():
        app.register_blueprint(bp)
        logger.debug("Registered blueprint %s at %s", bp.name, bp.url_prefix)


__all__ = ["register_plugin_blueprints"]
