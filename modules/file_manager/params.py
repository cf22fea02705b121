"""
Operation tags and parameter resolution.

The runner never reads parameters directly from an item; it asks a resolver
callable `(name, index) -> value`. ParameterResolver is the dict-backed
implementation used by the CLI and the tests.
"""

from enum import Enum
from typing import Any, Dict, Optional, Sequence

from core.exceptions import MissingParameterError


class Operation(Enum):
    """Operation tags accepted by the runner."""
    CREATE = "create"
    REMOVE = "remove"
    COPY = "copy"
    MOVE = "move"
    RENAME = "rename"
    READ = "read"
    WRITE = "write"
    APPEND = "append"
    LIST = "list"
    EXISTS = "exists"
    METADATA = "metadata"
    CHMOD = "chmod"
    COMPRESS = "compress"
    EXTRACT = "extract"

    @classmethod
    def values(cls) -> list:
        return [op.value for op in cls]


# Operations that echo back each path parameter on success
SOURCE_PATH_OPERATIONS = {
    Operation.CREATE, Operation.REMOVE, Operation.COPY, Operation.MOVE,
    Operation.RENAME, Operation.COMPRESS, Operation.EXTRACT,
}
DESTINATION_PATH_OPERATIONS = {
    Operation.COPY, Operation.MOVE, Operation.RENAME,
    Operation.COMPRESS, Operation.EXTRACT,
}
TARGET_PATH_OPERATIONS = {
    Operation.READ, Operation.WRITE, Operation.APPEND, Operation.LIST,
    Operation.EXISTS, Operation.METADATA, Operation.CHMOD,
}

PARAMETER_DEFAULTS: Dict[str, Any] = {
    "recursive": True,
    "encoding": "utf8",
    "mode": 0o644,
    "data": "",
}


class ParameterResolver:
    """
    Resolve parameters from one mapping per item.

    Missing names fall back to the defaults; a name with no default raises
    MissingParameterError carrying the item index.
    """

    def __init__(self, params: Sequence[Dict[str, Any]], defaults: Optional[Dict[str, Any]] = None):
        self.params = list(params)
        self.defaults = dict(PARAMETER_DEFAULTS if defaults is None else defaults)

    def __len__(self) -> int:
        return len(self.params)

    def __call__(self, name: str, index: int) -> Any:
        item_params = self.params[index] if index < len(self.params) else {}
        if name in item_params and item_params[name] is not None:
            return item_params[name]
        if name in self.defaults:
            return self.defaults[name]
        raise MissingParameterError(name, item_index=index)
