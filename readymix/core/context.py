"""
Actor context — the single source of truth for "who is acting right now."

The hosting shell sets the actor once per session, before any writes:

    - Web server:   create_app()  → store.set_current_user(...)
    - CLI:          main.py       → store.set_current_user(...)
    - Tests:        fixtures      → ActorContext(Actor(...))

Design notes:
    - One context per store, injected at construction.  Several stores
      can live side by side in tests.
    - No history, no stack.  Setting a new actor replaces the old one.
    - The actor is swapped as a whole object, so readers on another
      thread see either the old actor or the new one, never a mix.
"""

from __future__ import annotations

import logging
from typing import Any

from readymix.core.errors import InvalidArgumentError
from readymix.core.models.actor import Actor, ActorRole

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = Actor(id="user-1", role=ActorRole.SITE_AGENT, name="Site Agent")


class ActorContext:
    """Holds the current actor that store writes are attributed to."""

    def __init__(self, actor: Actor | None = None) -> None:
        self._actor: Actor = (actor or DEFAULT_ACTOR).model_copy()

    def set_current_user(
        self,
        user_id: str,
        role: ActorRole | str,
        name: str,
        **agent_info: Any,
    ) -> Actor:
        """Replace the current actor.

        Args:
            user_id: Actor id stamped into ``updated_by`` / ``created_by``.
            role: ``admin`` or ``site-agent``.
            name: Display name.
            **agent_info: Optional ``site``, ``company``, ``phone``, ``email``.

        Returns:
            A copy of the new actor.

        Raises:
            InvalidArgumentError: If ``user_id`` is blank or ``role`` unknown.
        """
        if not user_id:
            raise InvalidArgumentError("Actor id must not be blank")
        try:
            role = ActorRole(role)
        except ValueError:
            raise InvalidArgumentError(f"Unknown actor role: {role!r}") from None
        self._actor = Actor(id=user_id, role=role, name=name, **agent_info)
        logger.info("Current actor set to %s (%s)", user_id, self._actor.role)
        return self._actor.model_copy()

    def get_current_user(self) -> Actor:
        """Return a copy of the current actor."""
        return self._actor.model_copy()
