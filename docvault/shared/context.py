"""
Request context management using contextvars.

Provides async-safe storage for request-scoped data like the current caller.

Usage:
    # At the start of each operation:
    token = set_current_actor(caller)

    # In any code that needs the current actor (e.g. audit hooks):
    actor_id = get_current_actor_id()  # Returns "user123" or None

    # When the operation finishes:
    reset_current_actor(token)
"""

from contextvars import ContextVar, Token

from docvault.domain.value_objects import CallerIdentity

_current_actor: ContextVar[CallerIdentity | None] = ContextVar("current_actor", default=None)


def set_current_actor(caller: CallerIdentity | None) -> Token:
    """
    Set the current caller for this task.

    Returns the contextvar token so the previous value can be restored.
    """
    return _current_actor.set(caller)


def reset_current_actor(token: Token) -> None:
    """Restore the actor that was current before set_current_actor()."""
    _current_actor.reset(token)


def get_current_actor_id() -> str | None:
    """Get the current user ID, or None for system operations (e.g. sweeps)."""
    actor = _current_actor.get()
    return actor.user_id if actor else None
