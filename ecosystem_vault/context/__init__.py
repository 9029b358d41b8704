"""Execution context: the authenticated actor and operation tracking."""

from .actor_context import Actor, ActorContext, actor_context, require_admin, resolve_actor_id
from .operation_context import OperationContext, OperationHandler, operation

__all__ = [
    "Actor",
    "ActorContext",
    "actor_context",
    "require_admin",
    "resolve_actor_id",
    "OperationContext",
    "OperationHandler",
    "operation",
]
