"""Context management for service operations."""

from .operation_context import OperationContext, operation, operation_scope

__all__ = [
    "operation",
    "operation_scope",
    "OperationContext",
]
