"""Abstract base class for authentication channels.

An :class:`AuthPlugin` signs an outgoing request with the credential the
executor selected for it. Each plugin names the dispatch *channel* it serves
(``basicAuth``, ``oauth1``, ``oauth2``) and the declared security scheme
*types* it handles (``"Basic Authentication"``, ...). The
:class:`~apitree.auth.manager.AuthManager` registers it on the dispatcher as
the core handler of ``request:<channel>``.

To implement a new auth strategy, subclass :class:`AuthPlugin`, set
:attr:`~AuthPlugin.channel` and :attr:`~AuthPlugin.scheme_types`, and
implement :meth:`~AuthPlugin.apply`. Optionally override
:meth:`~AuthPlugin.validate_credential` for upfront checks.

See Also:
    :mod:`apitree.auth.manager` for plugin registration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from apitree.client.dispatch import DispatchOptions


class AuthPlugin(ABC):
    """Abstract base class for authentication plugins."""

    @property
    @abstractmethod
    def channel(self) -> str:
        """The auth channel name, e.g. ``"oauth2"``."""
        ...

    @property
    @abstractmethod
    def scheme_types(self) -> tuple[str, ...]:
        """Declared security scheme types routed to this channel."""
        ...

    @abstractmethod
    def apply(self, options: DispatchOptions, credential: Any) -> DispatchOptions:
        """Return *options* signed with *credential*.

        Implementations may mutate and return *options*.

        Raises:
            AuthError: If the credential cannot be used.
        """
        ...

    def validate_credential(self, credential: Any) -> list[str]:
        """Check *credential* before use.

        Returns:
            Human-readable problems; an empty list means the credential is
            usable.
        """
        return []
