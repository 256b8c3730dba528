"""Canonical Pydantic models shared across all apitree modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**API description models** -- produced by the AST sanitizer and consumed by the
resource tree compiler. They are frozen once built:
    :class:`ParamSpec`, :class:`BodySpec`, :class:`MethodSpec`,
    :class:`ResourceSpec`, :class:`SecurityScheme`, and :class:`ApiSpec`.

**Configuration Cell models** -- the mutable state shared by reference between
every node of one compiled client:
    :class:`RequestOptions`, :class:`ClientMetadata`, and
    :class:`ConfigurationCell`.

**Settings and results** -- local settings persisted as JSON in the user's
config directory, and the normalised result of every request:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`Settings`, and
    :class:`SanitizedResponse`.

Description models accept the camel-case keys of the raw AST (``relativeUri``,
``queryParameters``, ...) through aliases and the snake-case names through
``populate_by_name``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

HTTP_METHODS: tuple[str, ...] = ("get", "head", "put", "post", "patch", "delete")
"""Verbs the compiler binds request executors for, in binding order."""

QUERY_METHODS: frozenset[str] = frozenset({"get", "head"})
"""Verbs whose first call argument is query data rather than a body."""

MEDIA_TYPE_EXTENSION = "mediaTypeExtension"
"""Name of the trailing URI parameter used for extension-style content negotiation."""


def is_query_method(method: str) -> bool:
    """Return ``True`` when *method* takes query data as its first argument."""
    return method.lower() in QUERY_METHODS


# --- API description models ---


class ParamSpec(BaseModel):
    """A URI, query, header, or form parameter declared by the API.

    Example::

        ParamSpec(name="id", type="integer", required=True)
        ParamSpec.model_validate({"displayName": "Format", "enum": ["json"]})
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    name: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    type: Optional[str] = None
    required: bool = False
    enum: Optional[list[Any]] = None
    default: Any = None
    description: Optional[str] = None

    @property
    def label(self) -> str:
        """Display name, falling back to the parameter name."""
        return self.display_name or self.name or ""

    @property
    def single_enum_value(self) -> Any:
        """The sole enum member when the enum has exactly one, otherwise ``None``."""
        if self.enum is not None and len(self.enum) == 1:
            return self.enum[0]
        return None


class BodySpec(BaseModel):
    """One request body variant, keyed by content type on :class:`MethodSpec`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    form_parameters: dict[str, ParamSpec] = Field(
        default_factory=dict, alias="formParameters"
    )
    schema_: Any = Field(default=None, alias="schema")
    example: Any = None


class MethodSpec(BaseModel):
    """One HTTP verb declared on a resource."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    method: str
    description: Optional[str] = None
    query_parameters: dict[str, ParamSpec] = Field(
        default_factory=dict, alias="queryParameters"
    )
    headers: dict[str, ParamSpec] = Field(default_factory=dict)
    body: Optional[dict[str, Optional[BodySpec]]] = None
    secured_by: Optional[list[str]] = Field(default=None, alias="securedBy")
    responses: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_query(self) -> bool:
        return is_query_method(self.method)

    @property
    def content_types(self) -> list[str]:
        """Declared request body content types, in declaration order."""
        return list(self.body or {})


class ResourceSpec(BaseModel):
    """One declared path segment with its parameters, methods, and children.

    ``resources`` is keyed by relative path with the leading ``/`` removed,
    e.g. ``{"items": ..., "{id}": ...}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    relative_uri: str = Field(alias="relativeUri")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    description: Optional[str] = None
    uri_parameters: dict[str, ParamSpec] = Field(
        default_factory=dict, alias="uriParameters"
    )
    methods: dict[str, MethodSpec] = Field(default_factory=dict)
    resources: dict[str, ResourceSpec] = Field(default_factory=dict)
    secured_by: Optional[list[str]] = Field(default=None, alias="securedBy")


class SecurityScheme(BaseModel):
    """A named authentication mechanism declared by the API.

    ``type`` holds the declared scheme type string (``"OAuth 2.0"``,
    ``"OAuth 1.0"``, ``"Basic Authentication"``, ...); it is also the key
    under which credentials are stored in :attr:`ClientMetadata.authentication`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    name: Optional[str] = None
    type: str
    description: Optional[str] = None
    settings: dict[str, Any] = Field(default_factory=dict)
    described_by: dict[str, Any] = Field(default_factory=dict, alias="describedBy")


class ApiSpec(BaseModel):
    """Sanitized API description -- the input of the resource tree compiler.

    Produced by :func:`~apitree.parser.sanitizer.sanitize_ast`.

    See Also:
        :class:`ResourceSpec`: Individual resources of the tree.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    title: Optional[str] = None
    version: Optional[str] = None
    base_uri: str = Field(default="", alias="baseUri")
    base_uri_parameters: dict[str, ParamSpec] = Field(
        default_factory=dict, alias="baseUriParameters"
    )
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    secured_by: list[str] = Field(default_factory=list, alias="securedBy")
    security_schemes: dict[str, SecurityScheme] = Field(
        default_factory=dict, alias="securitySchemes"
    )
    traits: dict[str, Any] = Field(default_factory=dict)
    resource_types: dict[str, Any] = Field(default_factory=dict, alias="resourceTypes")
    resources: dict[str, ResourceSpec] = Field(default_factory=dict)


# --- Configuration Cell ---


class RequestOptions(BaseModel):
    """Per-call request options, used both as node defaults and as call overrides.

    ``body`` and ``proxy`` are *overridable*: a call-time value replaces the
    default outright. The four mapping fields are shallow-merged with
    call-time keys winning.

    Example::

        RequestOptions(headers={"X-Trace": "1"}, uri_parameters={"id": "42"})
        RequestOptions.model_validate({"baseUriParameters": {"version": "v2"}})
    """

    model_config = ConfigDict(populate_by_name=True)

    body: Any = None
    proxy: Optional[bool] = None
    headers: dict[str, Any] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)
    uri_parameters: dict[str, Any] = Field(default_factory=dict, alias="uriParameters")
    base_uri_parameters: dict[str, Any] = Field(
        default_factory=dict, alias="baseUriParameters"
    )

    def with_headers(self, headers: dict[str, Any]) -> RequestOptions:
        """Return a copy with its own header map, updated with *headers*.

        Header names are compared case-insensitively: ``{"accept": ...}``
        replaces an existing ``Accept`` entry. The copy never shares the
        header dict with ``self``.
        """
        replaced = {name.lower() for name in headers}
        kept = {k: v for k, v in self.headers.items() if k.lower() not in replaced}
        return self.model_copy(update={"headers": {**kept, **headers}})


class ClientMetadata(BaseModel):
    """Client-wide API facts plus the mutable authentication state.

    ``authentication`` maps a security scheme *type* to its stored credential.
    It is read by every request at call time, so storing a credential here
    takes effect for all nodes of the tree immediately.
    """

    base_uri: str = ""
    base_uri_parameters: dict[str, ParamSpec] = Field(default_factory=dict)
    secured_by: list[str] = Field(default_factory=list)
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict)
    authentication: dict[str, Any] = Field(default_factory=dict)

    def authenticate(self, scheme_type: str, credential: Any) -> None:
        """Store *credential* for every scheme of type *scheme_type*."""
        self.authentication[scheme_type] = credential

    def deauthenticate(self, scheme_type: str) -> None:
        """Forget the credential stored for *scheme_type*, if any."""
        self.authentication.pop(scheme_type, None)

    def scheme_type(self, scheme_name: str) -> Optional[str]:
        """Return the type of the declared scheme *scheme_name*, or ``None``."""
        scheme = self.security_schemes.get(scheme_name)
        return scheme.type if scheme is not None else None


class ConfigurationCell(BaseModel):
    """Process-lifetime shared state for one compiled client tree.

    Created once per :func:`~apitree.generator.tree.generate_client` call and
    handed by reference to every node. Per-call merges produce call-scoped
    copies and never write back into :attr:`options`.
    """

    options: RequestOptions = Field(default_factory=RequestOptions)
    client: ClientMetadata = Field(default_factory=ClientMetadata)


# --- Settings ---


class RequestConfig(BaseModel):
    """Default transport settings applied to every synchronous request."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`Settings`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class Settings(BaseModel):
    """User-wide settings persisted at ``~/.config/apitree/config.json``.

    Loaded and saved by :func:`~apitree.config.load_settings` and
    :func:`~apitree.config.save_settings`. See
    :func:`~apitree.config.resolve_settings` for the precedence chain.
    """

    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    proxy_url: Optional[str] = Field(
        default=None, description="Forward requests through this proxy endpoint"
    )
    plugins_disabled: list[str] = Field(default_factory=list)


# --- Results ---


class SanitizedResponse(BaseModel):
    """The normalised ``{body, status, headers}`` result of a transport call.

    Header names are lower-cased. ``body`` is decoded for JSON and URL-encoded
    responses and is the raw text otherwise.
    """

    body: Any = None
    status: int
    headers: dict[str, str] = Field(default_factory=dict)
