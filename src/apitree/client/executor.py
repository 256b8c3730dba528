"""Request executors -- the ``get``/``post``/... callables bound on tree nodes.

A :class:`RequestMethod` turns ``(body, options)`` into one HTTP exchange:

1. merge call-time options over the node defaults (never writing back);
2. expand the base URI and join the node's path segments;
3. for ``get``/``head``, fold the first argument into the query;
4. default ``Content-Type`` (single declared body type) and ``Accept``;
5. serialize the body by content type;
6. pick a security scheme with a stored credential, if any;
7. dispatch on ``request`` or ``request:<channel>``;
8. sanitize the response.

Calling conventions::

    response = client.items.get({"page": 2})             # blocking, raises
    client.items.get({"page": 2}, None, on_done)         # on_done(error, response)
    response = await client.items.get.acall({"page": 2}) # coroutine
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import httpx
from pydantic import ValidationError as ModelValidationError

from apitree.auth.selection import (
    AuthSelectionMiss,
    secured_by_for,
    select_security_scheme,
)
from apitree.client.codecs import (
    SERIALIZERS,
    encode_query,
    find_header,
    get_match,
    get_mime,
    is_transport_native,
    parse_query,
)
from apitree.client.dispatch import DEFAULT_CHANNEL, DispatchOptions
from apitree.client.response import sanitize_response
from apitree.client.uri_template import expand
from apitree.exceptions import ApiTreeError, SerializationError, ValidationError
from apitree.models import MethodSpec, RequestOptions, SanitizedResponse

if TYPE_CHECKING:
    from apitree.generator.nodes import Description, RoutePath

logger = logging.getLogger(__name__)

OVERRIDABLE_OPTIONS = ("body", "proxy")
MERGED_OPTIONS = ("headers", "query", "uri_parameters", "base_uri_parameters")
_OPTION_ALIASES = {
    "uriParameters": "uri_parameters",
    "baseUriParameters": "base_uri_parameters",
}

ResponseCallback = Callable[[Optional[Exception], Optional[SanitizedResponse]], None]
CallOptions = Union[RequestOptions, Mapping[str, Any], None]


def _call_values(options: CallOptions) -> dict[str, Any]:
    """The option keys a caller actually supplied."""
    if options is None:
        return {}
    if isinstance(options, RequestOptions):
        return {name: getattr(options, name) for name in options.model_fields_set}
    if not isinstance(options, Mapping):
        raise ValidationError(
            f"Request options must be a mapping, got {type(options).__name__}"
        )
    values = {}
    for key, value in options.items():
        name = _OPTION_ALIASES.get(key, key)
        if name in OVERRIDABLE_OPTIONS or name in MERGED_OPTIONS:
            values[name] = value
    return values


def _option_map(name: str, value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if name == "query":
        if isinstance(value, (str, Mapping)):
            return parse_query(value)
    elif isinstance(value, Mapping):
        return dict(value)
    raise ValidationError(f"Request option '{name}' must be a mapping, got {value!r}")


def merge_options(defaults: RequestOptions, options: CallOptions = None) -> RequestOptions:
    """Merge call-time *options* over node *defaults* into a new object.

    ``body`` and ``proxy`` are replaced when the caller supplied the key;
    ``headers``, ``query``, ``uri_parameters`` and ``base_uri_parameters`` are
    shallow-merged with call-time keys winning. Other keys are ignored.

    Raises:
        ValidationError: An option has the wrong shape or type.
    """
    supplied = _call_values(options)
    merged: dict[str, Any] = {}
    for name in OVERRIDABLE_OPTIONS:
        merged[name] = supplied[name] if name in supplied else getattr(defaults, name)
    for name in MERGED_OPTIONS:
        merged[name] = {
            **_option_map(name, getattr(defaults, name)),
            **_option_map(name, supplied.get(name)),
        }
    try:
        return RequestOptions.model_validate(merged)
    except ModelValidationError as exc:
        raise ValidationError(f"Invalid request options: {exc}") from exc


def join_url(base_uri: str, segments: tuple[str, ...]) -> str:
    """Join the expanded base URI and path segments with single slashes."""
    return "/".join([base_uri.rstrip("/"), *(s for s in segments if s)])


def serialize_body(body: Any, content_type: str) -> Any:
    """Serialize *body* for *content_type* (``application/json`` when empty).

    Raises:
        SerializationError: No serializer matches, or the serializer failed.
    """
    if body is None or is_transport_native(body):
        return body
    serializer = get_match(SERIALIZERS, content_type or "application/json")
    if serializer is None:
        raise SerializationError(f'Can not serialize content type of "{content_type}"')
    try:
        return serializer(body)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Could not serialize body: {exc}") from exc


class RequestMethod:
    """One HTTP verb bound to a node of the compiled tree.

    Args:
        path: The node's route path (segments, options, client, dispatcher).
        method: The declared method.
        resource_secured_by: ``securedBy`` of the declaring resource, if any.
        description: Signature and docs for introspection.
    """

    def __init__(
        self,
        path: RoutePath,
        method: MethodSpec,
        resource_secured_by: Optional[list[str]] = None,
        description: Optional[Description] = None,
    ) -> None:
        self._path = path
        self._method = method
        self._resource_secured_by = resource_secured_by
        self._description = description

    @property
    def verb(self) -> str:
        return self._method.method

    @property
    def is_query(self) -> bool:
        return self._method.is_query

    def __repr__(self) -> str:
        return f"<RequestMethod {self.verb.upper()} /{self._path.join()}>"

    # ------------------------------------------------------------------ #
    # Preparation
    # ------------------------------------------------------------------ #

    def prepare(
        self,
        body: Any = None,
        options: CallOptions = None,
        *,
        is_async: bool = False,
    ) -> tuple[str, DispatchOptions]:
        """Build the dispatch channel and options for one call.

        Raises:
            ValidationError: Malformed call options or query data.
            SerializationError: The body cannot be serialized.
        """
        merged = merge_options(self._path.options, options)
        base_uri = expand(self._path.client.base_uri, merged.base_uri_parameters)
        url = join_url(base_uri, self._path.segments)

        query = dict(merged.query)
        request_body = merged.body
        if self.is_query:
            if body is not None:
                if not isinstance(body, (str, Mapping)):
                    raise ValidationError(
                        f"{self.verb.upper()} query data must be a mapping or a "
                        f"query string, got {type(body).__name__}"
                    )
                query.update(parse_query(body))
        elif body is not None:
            request_body = body

        if query:
            url = f"{url}?{encode_query(query)}"

        headers = dict(merged.headers)
        content_type = get_mime(find_header(headers, "content-type"))
        declared = self._method.content_types
        if not content_type and len(declared) == 1:
            content_type = declared[0]
            headers["content-type"] = content_type
        if find_header(headers, "accept") is None:
            headers["accept"] = "*/*"

        dispatch_options = DispatchOptions(
            url=url,
            method=self.verb,
            data=serialize_body(request_body, content_type),
            headers=headers,
            async_=is_async,
            proxy=merged.proxy,
        )
        return self._select_channel(dispatch_options), dispatch_options

    def _select_channel(self, options: DispatchOptions) -> str:
        secured_by = secured_by_for(
            self._method.secured_by,
            self._resource_secured_by,
            self._path.client.secured_by,
        )
        selection = select_security_scheme(
            secured_by, self._path.client, self._path.dispatcher.scheme_channels
        )
        if isinstance(selection, AuthSelectionMiss):
            if secured_by:
                logger.debug(
                    "%s %s sent unauthenticated: %s",
                    self.verb.upper(), options.url, selection.reason,
                )
            return DEFAULT_CHANNEL
        options.auth[selection.channel] = selection.credential
        logger.debug(
            "%s %s secured by '%s' via channel '%s'",
            self.verb.upper(), options.url, selection.scheme_name, selection.channel,
        )
        return f"{DEFAULT_CHANNEL}:{selection.channel}"

    # ------------------------------------------------------------------ #
    # Calling
    # ------------------------------------------------------------------ #

    def __call__(
        self,
        body: Any = None,
        options: CallOptions = None,
        callback: Optional[ResponseCallback] = None,
    ) -> Any:
        """Execute the request.

        Without *callback* the call blocks, raises
        :class:`~apitree.exceptions.ApiTreeError` subclasses, and returns a
        :class:`~apitree.models.SanitizedResponse`.

        With *callback* the outcome is delivered exactly once as
        ``callback(error, response)``. Inside a running event loop the request
        is scheduled as a task, which is returned; otherwise it runs before
        this call returns and ``None`` is returned.
        """
        if callback is None and callable(options) and not isinstance(options, Mapping):
            callback, options = options, None
        if callback is None:
            channel, dispatch_options = self.prepare(body, options)
            response = self._path.dispatcher.request(channel, dispatch_options)
            return sanitize_response(response)
        return self._call_with_callback(body, options, callback)

    async def acall(self, body: Any = None, options: CallOptions = None) -> SanitizedResponse:
        """Execute the request on the running event loop."""
        channel, dispatch_options = self.prepare(body, options, is_async=True)
        response = await self._path.dispatcher.adispatch(channel, dispatch_options)
        return sanitize_response(response)

    def _call_with_callback(
        self, body: Any, options: CallOptions, callback: ResponseCallback
    ) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self.acall(body, options))
            task.add_done_callback(lambda done: _deliver(done, callback))
            return task

        try:
            channel, dispatch_options = self.prepare(body, options, is_async=True)
        except ApiTreeError as exc:
            callback(exc, None)
            return None

        def on_response(error: Optional[Exception], response: Optional[httpx.Response]) -> None:
            if error is not None:
                callback(error, None)
                return
            try:
                sanitized = sanitize_response(response)
            except ApiTreeError as exc:
                callback(exc, None)
                return
            callback(None, sanitized)

        self._path.dispatcher.dispatch(channel, dispatch_options, on_response)
        return None


def _deliver(task: asyncio.Task, callback: ResponseCallback) -> None:
    if task.cancelled():
        callback(asyncio.CancelledError("request cancelled"), None)
        return
    error = task.exception()
    if error is not None:
        callback(error, None)
    else:
        callback(None, task.result())
