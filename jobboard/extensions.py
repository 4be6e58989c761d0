"""
Accessors for the per-app services created by create_app().

Blueprints import from here rather than from app.py to avoid import cycles.
"""

from flask import current_app, request, session

from .api_client import BackendClient
from .config import Settings
from .state import EntityStores, ViewStateRegistry

EXTENSION_KEY = "jobboard"
VIEW_STATE_KEY = "view_state_id"


def _services() -> dict:
    return current_app.extensions[EXTENSION_KEY]


def get_settings() -> Settings:
    return _services()["settings"]


def get_client() -> BackendClient:
    return _services()["client"]


def get_identity():
    return _services()["identity"]


def get_registry() -> ViewStateRegistry:
    return _services()["registry"]


def get_view_state() -> EntityStores:
    """EntityStores for the current browser session."""
    registry = get_registry()
    state_id = session.get(VIEW_STATE_KEY)
    if not state_id:
        state_id = registry.new_id()
        session[VIEW_STATE_KEY] = state_id
    return registry.get(state_id)


def reset_view_state() -> None:
    state_id = session.pop(VIEW_STATE_KEY, None)
    if state_id:
        get_registry().drop(state_id)


def is_htmx() -> bool:
    return request.headers.get("HX-Request") == "true"
