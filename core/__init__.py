# File Manager - Core Module
"""
Core infrastructure for File Manager.
Configuration, audit logging and the exception hierarchy shared by all modules.
"""

from .config import Settings, load_settings
from .exceptions import (
    FileManagerError,
    UnknownOperationError,
    FilesystemError,
    ArchiverProcessError,
    StreamError,
    InvalidParameterError,
    MissingParameterError,
)
from .logger import AuditLogger, AuditEntry, ActionType, ActionStatus

__all__ = [
    "Settings",
    "load_settings",
    "FileManagerError",
    "UnknownOperationError",
    "FilesystemError",
    "ArchiverProcessError",
    "StreamError",
    "InvalidParameterError",
    "MissingParameterError",
    "AuditLogger",
    "AuditEntry",
    "ActionType",
    "ActionStatus",
]

__version__ = "0.1.0"
