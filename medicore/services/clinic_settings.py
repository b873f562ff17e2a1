"""Clinic-wide settings record (single row in the ``settings`` table)."""

from __future__ import annotations

from medicore.models import SETTINGS_ID, Settings
from medicore.services.seed import DEFAULT_SPECIALTIES, default_settings
from medicore.services.store import RecordStore


def get_settings(store: RecordStore) -> Settings:
    """Return the stored settings, falling back to the defaults."""
    settings = store.get("settings", SETTINGS_ID)
    if settings is None:
        return default_settings()
    if not settings.specialties:
        settings.specialties = list(DEFAULT_SPECIALTIES)
    return settings


def save_settings(store: RecordStore, settings: Settings) -> None:
    settings.id = SETTINGS_ID
    store.upsert("settings", SETTINGS_ID, settings)
