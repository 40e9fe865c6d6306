# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-request access context.

The AccessContext is the capability object handed to every service of a
request: it names the authenticated caller and carries the row store the
services may read through. It is built once per authenticated request and
passed explicitly; nothing caches it at process scope.

Example:
    >>> store = RowStore(get_sessionmaker())
    >>> context = await AccessContext.load(user_id, store)
    >>> service = StatisticsService(context)
    >>> overview = await service.get_overview()
"""

import logging
from dataclasses import dataclass

from src.core.config import Settings, get_settings
from src.core.exceptions import UnauthenticatedError, UnauthorizedError
from src.infrastructure.store import Equals, RowQuery, RowStore
from src.utils.logging import bind_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller.

    Attributes:
        id: Profile id of the caller.
        role: Profile role (student, teacher, admin), None if unknown.
    """

    id: str
    role: str | None = None


class AccessContext:
    """Caller identity plus the store capability for one request.

    Attributes:
        user: The authenticated caller.
        store: Row store the request's services read through.
        settings: Application settings.
    """

    def __init__(
        self,
        user: CurrentUser,
        store: RowStore,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the access context.

        Args:
            user: The authenticated caller.
            store: Row store for this request.
            settings: Application settings (defaults to get_settings()).
        """
        self.user = user
        self.store = store
        self.settings = settings or get_settings()
        bind_context(user_id=user.id, role=user.role)

    @classmethod
    def from_claims(
        cls,
        user_id: str | None,
        role: str | None,
        store: RowStore,
        settings: Settings | None = None,
    ) -> "AccessContext":
        """Build a context from identity claims asserted by the auth layer.

        Raises:
            UnauthenticatedError: If no user id is present.
        """
        if not user_id:
            raise UnauthenticatedError("Not authenticated")
        return cls(CurrentUser(id=str(user_id), role=role), store, settings)

    @classmethod
    async def load(
        cls,
        user_id: str | None,
        store: RowStore,
        settings: Settings | None = None,
    ) -> "AccessContext":
        """Build a context, reading the caller's role from its profile.

        Raises:
            UnauthenticatedError: If no user id is present or no profile exists.
            UpstreamError: If the profile lookup fails.
        """
        if not user_id:
            raise UnauthenticatedError("Not authenticated")

        rows = await store.fetch(
            RowQuery(
                table="profiles",
                columns=("id", "role"),
                predicates=(Equals("id", str(user_id)),),
                limit=1,
            )
        )
        if not rows:
            logger.warning("No profile for authenticated user %s", user_id)
            raise UnauthenticatedError("No profile for authenticated user", {"user_id": str(user_id)})

        return cls(CurrentUser(id=str(user_id), role=rows[0]["role"]), store, settings)

    def current_user_id(self) -> str:
        """Return the caller's profile id."""
        return self.user.id

    def current_user_role(self) -> str | None:
        """Return the caller's role."""
        return self.user.role

    @property
    def is_superuser(self) -> bool:
        """Check if the caller holds the superuser role."""
        return self.user.role == self.settings.access.superuser_role

    def require_any_role(self, *roles: str) -> None:
        """Ensure the caller holds one of ``roles``.

        Raises:
            UnauthorizedError: If the caller's role is not in ``roles``.
        """
        if self.user.role not in roles:
            raise UnauthorizedError(
                f"Role '{self.user.role}' is not allowed here",
                role=self.user.role,
                details={"allowed": list(roles)},
            )
