"""
Module: carf_kernel.selectors.actor_selector
Responsibility: Actor directory.  Resolves identities to ActorContext and
    answers the name/company/email lookups the dispatcher needs.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select

from carf_kernel.domain.approval import ActorContext
from carf_kernel.exceptions import ActorNotFoundError
from carf_kernel.models.directory import UserModel
from carf_kernel.selectors.base import BaseSelector


class ActorSelector(BaseSelector[UserModel]):
    """Read-only access to the users table."""

    def find_actor(self, identity: str) -> ActorContext | None:
        model = self.session.execute(
            select(UserModel).where(UserModel.identity == identity.strip())
        ).scalar_one_or_none()
        return model.to_actor() if model is not None else None

    def get_actor(self, identity: str) -> ActorContext:
        """Resolve ``identity``.

        Raises:
            ActorNotFoundError: If the identity is not in the directory.
        """
        actor = self.find_actor(identity)
        if actor is None:
            raise ActorNotFoundError(identity)
        return actor

    def _actors(self, identities: Iterable[str]) -> list[ActorContext]:
        wanted = sorted({i.strip() for i in identities if i and i.strip()})
        if not wanted:
            return []
        rows = self.session.execute(
            select(UserModel).where(UserModel.identity.in_(wanted))
        ).scalars()
        return [row.to_actor() for row in rows]

    def companies_for(self, identities: Iterable[str]) -> dict[str, str]:
        return {a.identity: a.company for a in self._actors(identities)}

    def display_names(self, identities: Iterable[str]) -> dict[str, str]:
        return {a.identity: a.display_name for a in self._actors(identities)}

    def emails_for(self, identities: Iterable[str]) -> dict[str, str]:
        return {a.identity: a.email for a in self._actors(identities) if a.email}
