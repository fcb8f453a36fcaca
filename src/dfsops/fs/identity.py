"""UserIdentity — the principal filesystem calls are made as.

``UserIdentity.do_as`` runs an action with the identity installed as the
current user.  Connectors read :func:`current_user` while building a
handle, so the handle is bound to whoever was current at that moment.
The current user lives in a ``ContextVar``; switching it in one thread
never affects another.
"""

from __future__ import annotations

import getpass
import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from .exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

_current: ContextVar[UserIdentity | None] = ContextVar("dfsops_current_user", default=None)


def _require_user_name(user_name: str) -> str:
    if not user_name or not user_name.strip():
        raise InvalidArgumentError("user name is required")
    if "/" in user_name or "\x00" in user_name or ":" in user_name:
        raise InvalidArgumentError(f"user name contains invalid characters: {user_name!r}")
    return user_name


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """An (optionally proxied) user principal.

    ``real_user`` is set for proxy identities: the service principal that
    authenticates and is allowed to act on behalf of ``user_name``.
    """

    user_name: str
    real_user: UserIdentity | None = None

    def __post_init__(self) -> None:
        _require_user_name(self.user_name)

    @classmethod
    def create_remote_user(cls, user_name: str) -> UserIdentity:
        return cls(user_name)

    @classmethod
    def create_proxy_user(cls, user_name: str, real_user: UserIdentity) -> UserIdentity:
        """Identity for *user_name* impersonated by *real_user*."""
        return cls(user_name, real_user=real_user)

    @classmethod
    def login_user(cls) -> UserIdentity:
        """The identity of the running process."""
        return cls(getpass.getuser())

    @property
    def is_proxy(self) -> bool:
        return self.real_user is not None

    def do_as(self, action: Callable[[], T]) -> T:
        """Run *action* with this identity as the current user."""
        token = _current.set(self)
        try:
            logger.debug("Running privileged action as %s", self)
            return action()
        finally:
            _current.reset(token)

    def __str__(self) -> str:
        if self.real_user is not None:
            return f"{self.user_name} (via {self.real_user.user_name})"
        return self.user_name


def current_user() -> UserIdentity:
    """The identity installed by ``do_as``, else the process login user."""
    user = _current.get()
    if user is None:
        return UserIdentity.login_user()
    return user
