"""Dependency helpers resolving the collaborators wired in ``create_app``."""

from fastapi import Request

from ..domain.models import Settings
from ..services.settings_service import SettingsEditor
from ..store import DocumentStore


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_auth(request: Request):
    return request.app.state.auth


def get_storage(request: Request):
    return request.app.state.storage


def get_config(request: Request):
    """Return the :class:`config.Settings` the app was built with."""
    return request.app.state.config


def get_settings_editor(request: Request) -> SettingsEditor:
    return request.app.state.settings_editor


def get_restaurant_settings(request: Request) -> Settings:
    return get_settings_editor(request).values
