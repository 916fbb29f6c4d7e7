"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from config.settings import Settings, get_settings

if TYPE_CHECKING:  # pragma: no cover
    from calls.services import CallServices


@lru_cache(maxsize=1)
def _services_factory() -> CallServices:
    # Lazy import so provider SDK clients are only built when a call arrives.
    from calls.services import build_call_services

    return build_call_services(get_settings())


def get_call_services() -> CallServices:
    return _services_factory()


def get_app_settings() -> Settings:
    return get_settings()
