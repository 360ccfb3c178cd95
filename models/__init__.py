"""SQLAlchemy models package for Emulators.wtf.
Re-exports the shared `db` instance to avoid import loops and provides
convenient names for the model classes.

Usage:
    from models import db, Console, Handheld, User
"""
from __future__ import annotations

from extensions import db  # shared SQLAlchemy() instance

# Import models only after db exists to avoid circular imports
from .catalog import (  # type: ignore F401
    Category,
    CfwApp,
    CfwCompatibleHandheld,
    Console,
    CustomFirmware,
    EmulationPerformance,
    Emulator,
    Game,
    Handheld,
    Preset,
    PresetItem,
    Setup,
    Tool,
)
from .error_log import ErrorLog  # type: ignore F401
from .user import User, AuditLog  # type: ignore F401

__all__ = [
    "db",
    "Category",
    "CfwApp",
    "CfwCompatibleHandheld",
    "Console",
    "CustomFirmware",
    "EmulationPerformance",
    "Emulator",
    "Game",
    "Handheld",
    "Preset",
    "PresetItem",
    "Setup",
    "Tool",
    "ErrorLog",
    "User",
    "AuditLog",
]
