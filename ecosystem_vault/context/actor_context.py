"""
Authenticated actor context.

The surrounding session layer resolves who is calling (user id + role) and
publishes it here; services read it for permission checks and audit
attribution. Stored in thread-local storage so concurrent requests served by
different threads never see each other's actor.
"""

import threading
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Generator, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..constants import UserRole
from ..exceptions import ErrorCode, ValidationError, permission_denied
from ..utils.logger import get_logger


class Actor(BaseModel):
    """Identity of the authenticated caller."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole = UserRole.USER

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("user_id must be a non-empty string")
        return v.strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class ActorContext:
    """Manages the current actor using thread-local storage."""

    _thread_local = threading.local()
    _logger = get_logger()

    @classmethod
    def set_current_actor(cls, actor: Actor) -> None:
        """
        Set the actor for the execution context.

        Raises:
            ValidationError: If actor is not an Actor instance
        """
        if not isinstance(actor, Actor):
            raise ValidationError(
                "actor must be an Actor instance",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="actor",
            )
        cls._thread_local.actor = actor
        cls._logger.debug(f"Current actor set to: {actor.user_id}")

    @classmethod
    def get_current_actor(cls) -> Optional[Actor]:
        return getattr(cls._thread_local, "actor", None)

    @classmethod
    def get_current_actor_id(cls) -> Optional[str]:
        actor = cls.get_current_actor()
        return actor.user_id if actor else None

    @classmethod
    def clear_current_actor(cls) -> None:
        if hasattr(cls._thread_local, "actor"):
            delattr(cls._thread_local, "actor")
        cls._logger.debug("Current actor cleared")


@contextmanager
def actor_context(user_id: str, role: UserRole = UserRole.USER) -> Generator[Actor, None, None]:
    """
    Context manager that sets the current actor and restores the previous one afterward.

    Args:
        user_id: ID of the authenticated user
        role: Role resolved by the session layer

    Yields:
        The active Actor
    """
    previous = ActorContext.get_current_actor()
    actor = Actor(user_id=user_id, role=role)
    ActorContext.set_current_actor(actor)
    try:
        yield actor
    finally:
        if previous is not None:
            ActorContext.set_current_actor(previous)
        else:
            ActorContext.clear_current_actor()


def resolve_actor_id(actor_id: Optional[str] = None) -> Optional[str]:
    """Prefer an explicit actor id, falling back to the context."""
    return actor_id or ActorContext.get_current_actor_id()


def require_admin(action: str):
    """
    Decorator restricting a method to admin actors.

    Calls made without an actor in context are trusted internal calls and
    pass through; the session layer is responsible for publishing an actor
    for every external request.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            actor = ActorContext.get_current_actor()
            if actor is not None and not actor.is_admin:
                raise permission_denied(action, func.__qualname__, actor_id=actor.user_id)
            return func(*args, **kwargs)

        return wrapper

    return decorator
