"""
Exceptions raised by the core and shown to the operator.

Messages of ValidationError are user-facing (Polish), the CLI prints them as-is.
"""

from __future__ import annotations


class OskError(Exception):
    """Base class for all application errors."""


class ValidationError(OskError):
    """User input rejected; the operation was aborted and state is unchanged."""


class BackupImportError(OskError):
    """A backup file could not be read or does not have the expected shape."""


class ParseServiceError(OskError):
    """The student-data parsing service failed or returned garbage."""
