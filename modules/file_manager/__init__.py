"""
File Manager module.

Batch runner dispatching filesystem operations, with the file and archive
operators it delegates to.
"""

from .archive import ArchiveOperator
from .file_ops import FileOperator, FileInfo
from .params import Operation, ParameterResolver, PARAMETER_DEFAULTS
from .runner import BatchRunner, InvocationItem, OperationOutcome

__all__ = [
    'ArchiveOperator',
    'FileOperator',
    'FileInfo',
    'Operation',
    'ParameterResolver',
    'PARAMETER_DEFAULTS',
    'BatchRunner',
    'InvocationItem',
    'OperationOutcome',
]
