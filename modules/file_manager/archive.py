"""
Archive operations for File Manager.

Compress and extract gzipped tarballs through an external `tar` process.
Compress runs `tar -czf` directly; extract decompresses the archive in
Python and streams the bytes into `tar -xf -`.
"""

import gzip
import os
import subprocess
import tempfile
import threading
import zlib
from typing import IO, List, Optional

from core.exceptions import ArchiverProcessError, FilesystemError, StreamError


CHUNK_SIZE = 64 * 1024


def _read_stderr(stream: IO[bytes]) -> str:
    stream.seek(0)
    return stream.read().decode("utf-8", errors="replace")


class ArchiveOperator:
    """
    Runs the external archiver.

    Each call owns exactly one process. The process is always waited on, and
    killed if it outlives the optional timeout.
    """

    def __init__(self, command: str = "tar", timeout: Optional[float] = None):
        """
        Initialize ArchiveOperator.

        Args:
            command: Archiver executable
            timeout: Seconds before the archiver is killed (None: wait forever)
        """
        self.command = command
        self.timeout = timeout

    def compress(self, src: str, dst: str) -> None:
        """
        Archive src (file or directory) into the gzipped tarball dst.

        The archive's root entry is the base name of src; tar runs from the
        parent directory of src.

        Raises:
            FilesystemError: If src doesn't exist
            ArchiverProcessError: If tar can't start, times out or exits non-zero
        """
        source = os.path.abspath(os.path.expanduser(src))
        destination = os.path.abspath(os.path.expanduser(dst))

        try:
            os.lstat(source)
        except OSError as e:
            raise FilesystemError.from_os_error(e, "compress", src) from e

        args = [self.command, "-czf", destination, os.path.basename(source)]
        self._run(args, cwd=os.path.dirname(source))

    def _run(self, args: List[str], cwd: str) -> None:
        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            raise ArchiverProcessError(f"{self.command} timed out after {self.timeout}s")
        except OSError as e:
            raise ArchiverProcessError(f"Failed to start {self.command}: {e}") from e

        if result.returncode != 0:
            raise ArchiverProcessError(
                f"{self.command} exited with code {result.returncode}",
                exit_code=result.returncode,
                stderr=result.stderr.decode("utf-8", errors="replace")
            )

    def extract(self, src: str, dst: str) -> None:
        """
        Unpack the gzipped tarball src into the directory dst.

        dst is created (with parents) first. The archive is gunzipped here and
        piped into `tar -xf - -C dst`.

        Raises:
            FilesystemError: If src can't be opened or dst can't be created
            StreamError: If the archive isn't valid gzip data
            ArchiverProcessError: If tar can't start, times out or exits non-zero
        """
        source = os.path.expanduser(src)
        destination = os.path.expanduser(dst)

        try:
            os.makedirs(destination, exist_ok=True)
        except OSError as e:
            raise FilesystemError.from_os_error(e, "extract", dst) from e

        try:
            archive = open(source, "rb")
        except OSError as e:
            raise FilesystemError.from_os_error(e, "extract", src) from e

        with archive, tempfile.TemporaryFile() as stderr:
            try:
                proc = subprocess.Popen(
                    [self.command, "-xf", "-", "-C", destination],
                    stdin=subprocess.PIPE,
                    stdout=subprocess.DEVNULL,
                    stderr=stderr
                )
            except OSError as e:
                raise ArchiverProcessError(f"Failed to start {self.command}: {e}") from e

            # Kills the archiver even while a write to its stdin is blocked
            timed_out = threading.Event()
            timer = None
            if self.timeout is not None:
                timer = threading.Timer(self.timeout, self._kill, args=(proc, timed_out))
                timer.daemon = True
                timer.start()

            stream_error: Optional[Exception] = None
            try:
                self._pump(archive, proc)
            except (OSError, EOFError, zlib.error) as e:
                stream_error = e
            finally:
                if proc.stdin and not proc.stdin.closed:
                    try:
                        proc.stdin.close()
                    except BrokenPipeError:
                        pass
                exit_code = proc.wait()
                if timer is not None:
                    timer.cancel()

            if timed_out.is_set():
                raise ArchiverProcessError(f"{self.command} timed out after {self.timeout}s")
            if exit_code != 0:
                raise ArchiverProcessError(
                    f"{self.command} exited with code {exit_code}",
                    exit_code=exit_code,
                    stderr=_read_stderr(stderr)
                )
            # tar may stop reading after the end-of-archive blocks; a closed pipe then is harmless
            if stream_error is not None and not isinstance(stream_error, BrokenPipeError):
                raise StreamError(f"Failed to stream archive '{src}': {stream_error}") from stream_error

    def _pump(self, archive: IO[bytes], proc: subprocess.Popen) -> None:
        """Copy decompressed chunks into tar's stdin."""
        with gzip.GzipFile(fileobj=archive, mode="rb") as decompressed:
            while True:
                chunk = decompressed.read(CHUNK_SIZE)
                if not chunk:
                    return
                proc.stdin.write(chunk)

    @staticmethod
    def _kill(proc: subprocess.Popen, timed_out: threading.Event) -> None:
        if proc.poll() is None:
            timed_out.set()
            proc.kill()
