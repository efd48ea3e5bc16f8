"""Jellyfin telemetry normalization for Posterr-style display cards."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "Card",
    "ConfigurationError",
    "JellyfinMediaServer",
    "OnDemandFilters",
    "ScreeningFilters",
    "ScreeningService",
]

_EXPORTS = {
    "Card": "jellycards.models",
    "OnDemandFilters": "jellycards.models",
    "ScreeningFilters": "jellycards.models",
    "ConfigurationError": "jellycards.config",
    "JellyfinMediaServer": "jellycards.adapter",
    "ScreeningService": "jellycards.services.screening",
}


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = import_module(_EXPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module 'jellycards' has no attribute {name}")
