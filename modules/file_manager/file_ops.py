"""
File operations module for File Manager.

Thin wrappers around the OS calls behind each operation, plus the recursive
directory copy. OSErrors are re-raised as FilesystemError.
"""

import base64
import binascii
import codecs
import os
import shutil
import stat
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Tuple, Union

from core.exceptions import FilesystemError, InvalidParameterError


# Node-style encoding names that Python's codec registry doesn't know
ENCODING_ALIASES = {
    "utf16le": "utf-16-le",
    "utf-16le": "utf-16-le",
    "ucs2": "utf-16-le",
    "ucs-2": "utf-16-le",
    "binary": "latin-1",
}

# Binary-to-text encodings: the file holds raw bytes, the data string holds their text form
BINARY_ENCODINGS = ("base64", "hex")


@dataclass
class FileInfo:
    """Information about a file or directory, as seen by lstat."""
    path: str
    size: int
    mtime: str
    atime: str
    is_dir: bool
    is_file: bool
    is_symlink: bool
    permissions: str


@contextmanager
def _os_errors(operation: str, path: str) -> Iterator[None]:
    try:
        yield
    except OSError as e:
        raise FilesystemError.from_os_error(e, operation, path) from e


def normalize_encoding(encoding: str) -> str:
    """
    Map an encoding name to a Python codec name.

    Raises:
        InvalidParameterError: If the encoding is unknown
    """
    name = str(encoding).strip().lower()
    if name in BINARY_ENCODINGS:
        return name
    name = ENCODING_ALIASES.get(name, name)
    try:
        return codecs.lookup(name).name
    except LookupError:
        raise InvalidParameterError("encoding", encoding, "unknown encoding")


def parse_mode(mode: Union[int, str]) -> int:
    """
    Parse a permission mode given as an int or an octal string ("755", "0o755").

    Raises:
        InvalidParameterError: If the value isn't a valid mode
    """
    if isinstance(mode, bool):
        raise InvalidParameterError("mode", mode, "expected an integer or octal string")
    if isinstance(mode, int):
        value = mode
    elif isinstance(mode, str):
        text = mode.strip().lower()
        if text.startswith("0o"):
            text = text[2:]
        try:
            value = int(text, 8)
        except ValueError:
            raise InvalidParameterError("mode", mode, "not an octal number")
    else:
        raise InvalidParameterError("mode", mode, "expected an integer or octal string")

    if value < 0 or value > 0o7777:
        raise InvalidParameterError("mode", mode, "out of range")
    return value


TRUE_STRINGS = ("true", "yes", "on", "1")
FALSE_STRINGS = ("false", "no", "off", "0")


def parse_bool(name: str, value: Union[bool, int, str]) -> bool:
    """
    Parse a flag given as a bool, 0/1 or a string such as "false".

    Raises:
        InvalidParameterError: If the value isn't recognisable as a boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise InvalidParameterError(name, value, "expected a boolean")


def is_directory(path: str) -> bool:
    """lstat-based directory check; a path that can't be stat'ed is not a directory."""
    try:
        return stat.S_ISDIR(os.lstat(path).st_mode)
    except (OSError, ValueError):
        return False


def has_extension(path: str) -> bool:
    """True when the last path component has a suffix such as `.txt`."""
    name = os.path.basename(os.path.normpath(path))
    return bool(os.path.splitext(name)[1])


class FileOperator:
    """Filesystem operations used by the batch runner."""

    def create(self, path: str) -> None:
        """
        Create an empty file or a directory.

        A path with an extension becomes an empty file (truncated if it
        exists); any other path becomes a directory, parents included.
        """
        with _os_errors("create", path):
            if has_extension(path):
                with open(path, "w", encoding="utf-8"):
                    pass
            else:
                os.makedirs(path, exist_ok=True)

    def remove(self, path: str, recursive: bool = True) -> None:
        """
        Remove a file or directory.

        Args:
            path: Path to remove
            recursive: Remove directory contents too. Without it, only an
                empty directory can be removed.

        Raises:
            FilesystemError: If the path is missing (and recursive is off),
                the directory isn't empty, or access is denied
        """
        with _os_errors("remove", path):
            if is_directory(path):
                if recursive:
                    try:
                        shutil.rmtree(path)
                    except FileNotFoundError:
                        pass
                else:
                    os.rmdir(path)
            elif recursive and not os.path.lexists(path):
                # rm -rf semantics: nothing to remove
                return
            else:
                os.unlink(path)

    def copy(self, src: str, dst: str) -> None:
        """
        Copy a file, or mirror a directory tree.

        Regular files are copied byte-for-byte with their permission bits.
        Symbolic links inside a copied directory are recreated pointing at
        the same target rather than copied through.
        """
        if is_directory(src):
            self._copy_tree(src, dst)
            return

        with _os_errors("copy", src):
            shutil.copyfile(src, dst)
            shutil.copymode(src, dst)

    def _copy_tree(self, src: str, dst: str) -> None:
        pending: List[Tuple[str, str]] = [(src, dst)]

        while pending:
            src_dir, dst_dir = pending.pop()

            with _os_errors("copy", dst_dir):
                os.makedirs(dst_dir, exist_ok=True)

            with _os_errors("copy", src_dir):
                with os.scandir(src_dir) as entries:
                    children = list(entries)

            for entry in children:
                dst_path = os.path.join(dst_dir, entry.name)
                with _os_errors("copy", entry.path):
                    if entry.is_dir(follow_symlinks=False):
                        pending.append((entry.path, dst_path))
                    elif entry.is_symlink():
                        os.symlink(os.readlink(entry.path), dst_path)
                    else:
                        shutil.copyfile(entry.path, dst_path)
                        shutil.copymode(entry.path, dst_path)

    def move(self, src: str, dst: str) -> None:
        """Rename src to dst; fails across filesystems."""
        with _os_errors("move", src):
            os.rename(src, dst)

    def read(self, path: str, encoding: str = "utf8") -> str:
        """
        Read the whole file.

        Args:
            path: Path to the file
            encoding: Text encoding, or base64/hex to get the raw bytes in that form

        Returns:
            File contents as string
        """
        codec = normalize_encoding(encoding)

        with _os_errors("read", path):
            if codec in BINARY_ENCODINGS:
                with open(path, "rb") as f:
                    raw = f.read()
                return base64.b64encode(raw).decode("ascii") if codec == "base64" else raw.hex()

            with open(path, "r", encoding=codec, newline="", errors="replace") as f:
                return f.read()

    def write(self, path: str, data: str, encoding: str = "utf8") -> None:
        """Overwrite (or create) a file with data."""
        self._write(path, data, encoding, append=False)

    def append(self, path: str, data: str, encoding: str = "utf8") -> None:
        """Append data to a file, creating it if absent."""
        self._write(path, data, encoding, append=True)

    def _write(self, path: str, data: str, encoding: str, append: bool) -> None:
        codec = normalize_encoding(encoding)
        operation = "append" if append else "write"
        text = "" if data is None else str(data)

        if codec in BINARY_ENCODINGS:
            try:
                raw = base64.b64decode(text, validate=True) if codec == "base64" else bytes.fromhex(text)
            except (binascii.Error, ValueError) as e:
                raise InvalidParameterError("data", text[:32], f"not valid {codec}: {e}")
            with _os_errors(operation, path):
                with open(path, "ab" if append else "wb") as f:
                    f.write(raw)
            return

        with _os_errors(operation, path):
            with open(path, "a" if append else "w", encoding=codec, newline="") as f:
                f.write(text)

    def list_directory(self, path: str) -> List[str]:
        """Names of the immediate children of a directory, in directory order."""
        with _os_errors("list", path):
            return os.listdir(path)

    def exists(self, path: str) -> bool:
        """Whether the path is accessible. Never raises; any failure means False."""
        try:
            return os.access(path, os.F_OK)
        except (OSError, ValueError, TypeError):
            return False

    def get_metadata(self, path: str) -> FileInfo:
        """
        Stat a path without following a final symlink.

        Raises:
            FilesystemError: If the path can't be stat'ed
        """
        with _os_errors("metadata", path):
            st = os.lstat(path)

        return FileInfo(
            path=os.path.abspath(path),
            size=st.st_size,
            mtime=datetime.fromtimestamp(st.st_mtime).isoformat(),
            atime=datetime.fromtimestamp(st.st_atime).isoformat(),
            is_dir=stat.S_ISDIR(st.st_mode),
            is_file=stat.S_ISREG(st.st_mode),
            is_symlink=stat.S_ISLNK(st.st_mode),
            permissions=oct(stat.S_IMODE(st.st_mode))[2:].zfill(3)
        )

    def chmod(self, path: str, mode: Union[int, str]) -> int:
        """Set permission bits. Returns the numeric mode applied."""
        value = parse_mode(mode)
        with _os_errors("chmod", path):
            os.chmod(path, value)
        return value
