"""
Operation context for cross-cutting logging and error enrichment.

Service methods decorated with ``@operation()`` log an ENTER/EXIT pair with
a per-call operation ID, share a correlation ID with anything they call, and
attach their operation details to any BaseError that escapes them.
"""

import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Optional, TypeVar, Union, cast

from ..exceptions import BaseError, get_correlation_id, set_correlation_id
from ..utils.logger import get_logger


class OperationContext:
    """Context for a specific operation."""

    def __init__(self, operation_name: str, correlation_id: Optional[str] = None, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())
        self.correlation_id = correlation_id or get_correlation_id() or str(uuid.uuid4())

        set_correlation_id(self.correlation_id)

        self.context = context
        self.context["operation_id"] = self.operation_id
        self.context["correlation_id"] = self.correlation_id

        self.start_time = time.time()

    @property
    def duration_ms(self) -> float:
        """Get the operation duration in milliseconds."""
        return (time.time() - self.start_time) * 1000

    def add_context(self, **kwargs) -> None:
        """Add additional context information."""
        self.context.update(kwargs)


@contextmanager
def operation_scope(name: str, **context):
    """Context manager that logs entry, exit and failure of an operation."""
    logger = get_logger()
    op_ctx = OperationContext(name, **context)
    ids = {"operation_id": op_ctx.operation_id, "correlation_id": op_ctx.correlation_id}

    logger.debug(f"ENTER: {name}", extra={**context, **ids})

    try:
        yield op_ctx
    except BaseError as e:
        e.add_context(
            operation_name=name,
            operation_id=op_ctx.operation_id,
            operation_duration_ms=op_ctx.duration_ms,
        )
        # BaseError already logged itself at construction
        logger.debug(
            f"FAILED: {name} -> {e.error_code.value}",
            extra={**ids, "duration_ms": op_ctx.duration_ms, "error_id": e.error_id},
        )
        raise
    except Exception as e:
        logger.exception(
            f"ERROR: {name} -> {type(e).__name__}: {str(e)}",
            extra={
                **context,
                **ids,
                "duration_ms": op_ctx.duration_ms,
                "error_type": type(e).__name__,
                "status": "error",
            },
        )
        raise
    else:
        logger.debug(
            f"EXIT: {name}",
            extra={**ids, "duration_ms": op_ctx.duration_ms, "status": "success"},
        )


F = TypeVar("F", bound=Callable[..., Any])


def operation(name: Union[Optional[str], Callable] = None):
    """
    Decorator for service operations.

    Args:
        name: Optional operation name. Defaults to ``module.Class.method``.

    Arguments of the wrapped call are never logged; they routinely carry
    passwords and session tokens.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if name is not None:
                op_name = name
            else:
                op_name = func.__name__
                if args and hasattr(args[0], func.__name__):
                    op_name = f"{args[0].__class__.__name__}.{op_name}"
                op_name = f"{func.__module__.split('.')[-1]}.{op_name}"

            with operation_scope(op_name, source_module=func.__module__):
                return func(*args, **kwargs)

        return cast(F, wrapper)

    # Used without parentheses
    if callable(name):
        func, name = name, None
        return decorator(func)

    return decorator
