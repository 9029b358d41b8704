"""
ENTER/EXIT/ERROR logging around vault operations.

Every public service method runs inside an operation. The outermost
operation on a thread opens a correlation id that nested operations and any
BaseError raised inside them share; it is cleared again when that outermost
operation ends.

Call arguments are not logged, since they routinely carry secrets. Only the
identifier arguments listed in ``LOGGED_ID_ARGUMENTS`` are copied into the
log context.
"""

import inspect
import time
import uuid
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

from ..exceptions import BaseError, clear_correlation_id, get_correlation_id, set_correlation_id
from ..utils.logger import ContextAwareLogger, get_logger
from .actor_context import ActorContext

LOGGED_ID_ARGUMENTS = ("platform_id", "ecosystem_id", "kind")


class OperationContext:
    """One running operation."""

    def __init__(self, operation_name: str, **context):
        self.operation_name = operation_name
        self.operation_id = str(uuid.uuid4())

        inherited = get_correlation_id()
        self.owns_correlation = inherited is None
        self.correlation_id = inherited or str(uuid.uuid4())
        if self.owns_correlation:
            set_correlation_id(self.correlation_id)

        self.context = context
        self.counters: Dict[str, Union[int, float]] = {}
        self._started = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        return round((time.perf_counter() - self._started) * 1000, 2)

    def record(self, name: str, value: Union[int, float]) -> None:
        """Attach a counter to the EXIT log line."""
        self.counters[name] = value

    def log_fields(self, **more) -> Dict[str, Any]:
        return {
            **self.context,
            "operation_id": self.operation_id,
            "correlation_id": self.correlation_id,
            **more,
        }

    def finish(self) -> None:
        if self.owns_correlation:
            clear_correlation_id()


class OperationHandler:
    """Logs the lifecycle of operations and enriches vault errors."""

    def __init__(self, logger: Optional[ContextAwareLogger] = None):
        self.logger = logger if logger is not None else get_logger()

    @contextmanager
    def operation(self, name: str, **context) -> Iterator[OperationContext]:
        actor_id = ActorContext.get_current_actor_id()
        if actor_id:
            context.setdefault("actor_id", actor_id)

        op_ctx = OperationContext(name, **context)
        self.logger.debug(f"ENTER: {name}", extra=op_ctx.log_fields())

        try:
            yield op_ctx
        except BaseError as e:
            # The error has logged itself already; say where it surfaced
            e.add_context(operation_name=name, operation_id=op_ctx.operation_id)
            self.logger.warning(
                f"ERROR: {name} -> {e.error_code.value}",
                extra=op_ctx.log_fields(
                    duration_ms=op_ctx.duration_ms,
                    error_id=e.error_id,
                    status="error",
                ),
            )
            raise
        except Exception as e:
            self.logger.exception(
                f"ERROR: {name} -> {type(e).__name__}",
                extra=op_ctx.log_fields(
                    duration_ms=op_ctx.duration_ms,
                    error_type=type(e).__name__,
                    status="error",
                ),
            )
            raise
        else:
            self.logger.info(
                f"EXIT: {name}",
                extra=op_ctx.log_fields(
                    duration_ms=op_ctx.duration_ms, status="success", **op_ctx.counters
                ),
            )
        finally:
            op_ctx.finish()


F = TypeVar("F", bound=Callable[..., Any])


def _logged_arguments(signature: inspect.Signature, args, kwargs) -> Dict[str, str]:
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    return {
        name: str(getattr(value, "value", value))
        for name, value in bound.arguments.items()
        if name in LOGGED_ID_ARGUMENTS and value is not None
    }


def operation(name: Union[Optional[str], Callable] = None):
    """
    Run the decorated callable inside an operation.

    Usable bare (``@operation``) or with an explicit name
    (``@operation("credential_store.update")``). The default name is
    ``module.Class.method``.
    """

    def decorator(func: F) -> F:
        if name is not None and not callable(name):
            op_name = name
        else:
            op_name = f"{func.__module__.split('.')[-1]}.{func.__qualname__}"
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            context = _logged_arguments(signature, args, kwargs)
            with OperationHandler().operation(op_name, **context):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    if callable(name):
        return decorator(name)

    return decorator
