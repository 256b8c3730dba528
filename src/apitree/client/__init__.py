"""Request execution for compiled clients.

The pieces, from the node outward:

* :class:`RequestMethod` -- the ``get``/``post``/... callable on a node;
  merges options, builds the URL, serializes the body, and picks the auth
  channel.
* :class:`Dispatcher` -- named channels with middleware stacks and a core
  handler each.
* :class:`HttpxTransport` -- the core handler that performs the HTTP
  exchange with :mod:`httpx`.
* :func:`sanitize_response` -- normalises the result into a
  :class:`~apitree.models.SanitizedResponse`.

Example::

    from apitree.client import create_default_dispatcher

    dispatcher = create_default_dispatcher(settings)
    client = generate_client(ast, dispatcher=dispatcher)
"""

from apitree.client.codecs import FormData
from apitree.client.dispatch import (
    DEFAULT_CHANNEL,
    WILDCARD,
    Dispatcher,
    DispatchOptions,
    create_default_dispatcher,
)
from apitree.client.executor import RequestMethod, merge_options
from apitree.client.response import sanitize_response
from apitree.client.transport import HttpxTransport

__all__ = [
    "DEFAULT_CHANNEL",
    "WILDCARD",
    "Dispatcher",
    "DispatchOptions",
    "FormData",
    "HttpxTransport",
    "RequestMethod",
    "create_default_dispatcher",
    "merge_options",
    "sanitize_response",
]
