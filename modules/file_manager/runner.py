"""
Batch operation runner for File Manager.

Processes invocation items one at a time, in order, dispatching each to a
filesystem operation and collecting one outcome per item.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from core.exceptions import FileManagerError, UnknownOperationError
from core.logger import AuditLogger, ActionType, ActionStatus

from .archive import ArchiveOperator
from .file_ops import FileOperator, parse_bool
from .params import (
    Operation,
    SOURCE_PATH_OPERATIONS,
    DESTINATION_PATH_OPERATIONS,
    TARGET_PATH_OPERATIONS,
)


ParamResolver = Callable[[str, int], Any]
FailurePolicy = Union[bool, Callable[[], bool]]

ACTION_TYPES = {
    Operation.READ: ActionType.READ,
    Operation.LIST: ActionType.READ,
    Operation.EXISTS: ActionType.READ,
    Operation.METADATA: ActionType.READ,
    Operation.REMOVE: ActionType.DELETE,
    Operation.COMPRESS: ActionType.EXECUTE,
    Operation.EXTRACT: ActionType.EXECUTE,
}


@dataclass
class InvocationItem:
    """One unit of input: an arbitrary key-value record."""
    json: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationOutcome:
    """
    Result for one item.

    On success `json` is the item's record augmented with the operation's
    output fields. On a tolerated failure it is the original record and
    `error`/`paired_item` identify what failed.
    """
    json: Dict[str, Any]
    error: Optional[FileManagerError] = None
    paired_item: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"json": self.json}
        if self.error is not None:
            data["error"] = {
                "type": type(self.error).__name__,
                "message": self.error.message,
            }
            data["pairedItem"] = self.paired_item
        return data


def _path(value: Any) -> str:
    return os.path.expanduser(str(value))


class BatchRunner:
    """
    Runs a batch of filesystem operations.

    Items are processed strictly sequentially. In strict mode the first
    failure aborts the batch; in tolerant mode it is recorded in that item's
    outcome and the batch carries on.
    """

    def __init__(
        self,
        file_operator: Optional[FileOperator] = None,
        archive_operator: Optional[ArchiveOperator] = None,
        logger: Optional[AuditLogger] = None
    ):
        """
        Initialize BatchRunner.

        Args:
            file_operator: Filesystem operations (default: FileOperator())
            archive_operator: Archiver wrapper (default: ArchiveOperator())
            logger: Audit logger; nothing is logged when None
        """
        self.files = file_operator or FileOperator()
        self.archives = archive_operator or ArchiveOperator()
        self.logger = logger

        self._handlers: Dict[Operation, Callable[[ParamResolver, int], Dict[str, Any]]] = {
            Operation.CREATE: self._create,
            Operation.REMOVE: self._remove,
            Operation.COPY: self._copy,
            Operation.MOVE: self._move,
            Operation.RENAME: self._move,
            Operation.READ: self._read,
            Operation.WRITE: self._write,
            Operation.APPEND: self._append,
            Operation.LIST: self._list,
            Operation.EXISTS: self._exists,
            Operation.METADATA: self._metadata,
            Operation.CHMOD: self._chmod,
            Operation.COMPRESS: self._compress,
            Operation.EXTRACT: self._extract,
        }

    def run(
        self,
        items: Sequence[Union[InvocationItem, Dict[str, Any]]],
        resolve_param: ParamResolver,
        continue_on_fail: FailurePolicy = False
    ) -> List[OperationOutcome]:
        """
        Run every item in order.

        Args:
            items: Invocation items (plain dicts are wrapped as records)
            resolve_param: Callable (name, index) -> parameter value
            continue_on_fail: bool, or a callable asked when an item fails

        Returns:
            One OperationOutcome per item, in input order

        Raises:
            FileManagerError: In strict mode, the first failure with its item index
        """
        outcomes: List[OperationOutcome] = []

        for index, raw_item in enumerate(items):
            item = raw_item if isinstance(raw_item, InvocationItem) else InvocationItem(json=dict(raw_item or {}))
            operation: Any = None

            try:
                operation = resolve_param("operation", index)
                output = self.execute(operation, resolve_param, index)
            except Exception as e:
                error = self._as_domain_error(e, index)
                tolerate = continue_on_fail() if callable(continue_on_fail) else continue_on_fail
                self._audit(operation, index, ActionStatus.TOLERATED if tolerate else ActionStatus.FAILED,
                            result=str(error))
                if tolerate:
                    outcomes.append(OperationOutcome(json=item.json, error=error, paired_item=index))
                    continue
                if error is e:
                    raise
                raise error from e

            item.json.update(output)
            self._audit(operation, index, ActionStatus.EXECUTED, metadata=self._paths(output))
            outcomes.append(OperationOutcome(json=item.json))

        return outcomes

    def execute(self, operation: Any, resolve_param: ParamResolver, index: int = 0) -> Dict[str, Any]:
        """
        Run a single operation and build its output fields.

        Raises:
            UnknownOperationError: If the tag isn't a known operation
            FileManagerError: If the operation fails
        """
        try:
            op = operation if isinstance(operation, Operation) else Operation(operation)
        except ValueError:
            raise UnknownOperationError(operation, item_index=index)

        output = self._handlers[op](resolve_param, index)
        output["operation"] = op.value
        output["success"] = True

        if op in SOURCE_PATH_OPERATIONS:
            output["sourcePath"] = resolve_param("sourcePath", index)
        if op in DESTINATION_PATH_OPERATIONS:
            output["destinationPath"] = resolve_param("destinationPath", index)
        if op in TARGET_PATH_OPERATIONS:
            output["targetPath"] = resolve_param("targetPath", index)
        return output

    @staticmethod
    def _as_domain_error(error: Exception, index: int) -> FileManagerError:
        if isinstance(error, FileManagerError):
            if error.item_index is None:
                error.item_index = index
            return error
        return FileManagerError(f"{type(error).__name__}: {error}", item_index=index)

    @staticmethod
    def _paths(output: Dict[str, Any]) -> Dict[str, Any]:
        return {k: output[k] for k in ("sourcePath", "destinationPath", "targetPath") if k in output}

    def _audit(
        self,
        operation: Any,
        index: int,
        status: ActionStatus,
        result: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        if self.logger is None:
            return
        try:
            op = Operation(operation)
        except ValueError:
            op = None
        try:
            self.logger.log_action(
                action_type=ACTION_TYPES.get(op, ActionType.WRITE),
                operation=op.value if op else str(operation),
                item_index=index,
                status=status,
                result=result,
                metadata=metadata
            )
        except OSError as e:
            message = f"Failed to write audit log '{self.logger.log_path}': {e.strerror or e}"
            if result:
                message += f" (item error: {result})"
            raise FileManagerError(message, item_index=index) from e

    # Handlers. Each returns the operation-specific output fields.

    def _create(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.files.create(_path(params("sourcePath", i)))
        return {}

    def _remove(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.files.remove(_path(params("sourcePath", i)), recursive=parse_bool("recursive", params("recursive", i)))
        return {}

    def _copy(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.files.copy(_path(params("sourcePath", i)), _path(params("destinationPath", i)))
        return {}

    def _move(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.files.move(_path(params("sourcePath", i)), _path(params("destinationPath", i)))
        return {}

    def _read(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        return {"data": self.files.read(_path(params("targetPath", i)), params("encoding", i))}

    def _write(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.files.write(_path(params("targetPath", i)), params("data", i), params("encoding", i))
        return {}

    def _append(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.files.append(_path(params("targetPath", i)), params("data", i), params("encoding", i))
        return {}

    def _list(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        return {"list": self.files.list_directory(_path(params("targetPath", i)))}

    def _exists(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        return {"exists": self.files.exists(_path(params("targetPath", i)))}

    def _metadata(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        info = self.files.get_metadata(_path(params("targetPath", i)))
        return {
            "size": info.size,
            "mtime": info.mtime,
            "atime": info.atime,
            "isDirectory": info.is_dir,
            "isFile": info.is_file,
            "isSymbolicLink": info.is_symlink,
            "permissions": info.permissions,
        }

    def _chmod(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        mode = self.files.chmod(_path(params("targetPath", i)), params("mode", i))
        return {"mode": mode}

    def _compress(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.archives.compress(_path(params("sourcePath", i)), _path(params("destinationPath", i)))
        return {}

    def _extract(self, params: ParamResolver, i: int) -> Dict[str, Any]:
        self.archives.extract(_path(params("sourcePath", i)), _path(params("destinationPath", i)))
        return {}
