"""
Actor model — whoever is currently driving the dashboard.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class ActorRole(StrEnum):
    """Roles an actor can hold."""

    ADMIN = "admin"
    SITE_AGENT = "site-agent"


class Actor(BaseModel):
    """An identity that mutations are attributed to.

    The agent fields are only filled in for site agents signing in
    from the field.
    """

    id: str
    role: ActorRole = ActorRole.SITE_AGENT
    name: str = ""

    site: str | None = None
    company: str | None = None
    phone: str | None = None
    email: str | None = None
