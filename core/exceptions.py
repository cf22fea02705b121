"""
Exceptions for File Manager.

All errors raised by the runner derive from FileManagerError so callers can
catch them in one place. The runner attaches the failing item's index.
"""

import errno as errno_codes
from typing import Any, Optional


class FileManagerError(Exception):
    """Base exception for all File Manager errors."""

    def __init__(self, message: str, item_index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.item_index = item_index

    def __str__(self) -> str:
        if self.item_index is None:
            return self.message
        return f"{self.message} [item {self.item_index}]"


class UnknownOperationError(FileManagerError):
    """Raised when an item asks for an operation tag that does not exist."""

    def __init__(self, operation: Any, item_index: Optional[int] = None):
        self.operation = operation
        super().__init__(f'Unknown operation "{operation}"', item_index)


class FilesystemError(FileManagerError):
    """
    An underlying OS call failed.

    Keeps the errno and path of the original OSError so that callers can
    tell a missing path from a permission problem or a non-empty directory.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        errno: Optional[int] = None,
        item_index: Optional[int] = None
    ):
        self.operation = operation
        self.path = path
        self.errno = errno
        super().__init__(message, item_index)

    @property
    def code(self) -> Optional[str]:
        """Symbolic errno name, e.g. ENOENT."""
        if self.errno is None:
            return None
        return errno_codes.errorcode.get(self.errno)

    @classmethod
    def from_os_error(cls, error: OSError, operation: str, path: Optional[str] = None) -> "FilesystemError":
        """Build a FilesystemError from an OSError raised by an OS call."""
        target = error.filename if error.filename is not None else path
        reason = error.strerror or str(error)
        message = f"{operation} failed: {reason}"
        if target is not None:
            message += f" '{target}'"
        if error.filename2 is not None:
            message += f" -> '{error.filename2}'"
        return cls(message, operation=operation, path=target, errno=error.errno)


class ArchiverProcessError(FileManagerError):
    """The external archiver could not be spawned or exited non-zero."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
        item_index: Optional[int] = None
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message, item_index)


class StreamError(FileManagerError):
    """Reading or decompressing the archive stream failed mid-pipe."""
    pass


class InvalidParameterError(FileManagerError):
    """A parameter value could not be used (bad encoding, malformed mode)."""

    def __init__(self, name: str, value: Any, reason: str, item_index: Optional[int] = None):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for '{name}' ({value!r}): {reason}", item_index)


class MissingParameterError(FileManagerError):
    """A required parameter was not supplied for an item."""

    def __init__(self, name: str, item_index: Optional[int] = None):
        self.name = name
        super().__init__(f"Missing required parameter '{name}'", item_index)
