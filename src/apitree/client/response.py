"""Response normalisation and the bridge to the CLI output system.

:func:`sanitize_response` turns the transport's :class:`httpx.Response` into a
:class:`~apitree.models.SanitizedResponse` -- lower-cased headers and a body
decoded by the parser registered for its ``Content-Type``.
:func:`format_api_response` then renders that result for ``apitree call``.

See Also:
    :mod:`apitree.output` -- the output manager that renders data.
"""

from __future__ import annotations

from typing import Optional

import httpx

from apitree.client.codecs import PARSERS, get_match, get_mime
from apitree.exceptions import ResponseParseError
from apitree.models import SanitizedResponse
from apitree.output import get_output


def sanitize_response(response: Optional[httpx.Response]) -> Optional[SanitizedResponse]:
    """Normalise a transport response.

    Args:
        response: The raw response, or ``None`` when the transport produced
            nothing (in which case ``None`` is returned).

    Returns:
        The sanitized ``{body, status, headers}`` result. An empty body is
        ``None``; a body with no registered parser is the raw text.

    Raises:
        ResponseParseError: If the registered parser rejects the body.
    """
    if response is None:
        return None

    headers = {name.lower(): value for name, value in response.headers.items()}
    text = response.text
    body = text or None

    parser = get_match(PARSERS, get_mime(headers.get("content-type")))
    if parser is not None and text:
        try:
            body = parser(text)
        except ValueError as exc:
            raise ResponseParseError(
                f"Could not parse response: {exc} "
                f"(HTTP {response.status_code}, {headers.get('content-type')})"
            ) from exc

    return SanitizedResponse(body=body, status=response.status_code, headers=headers)


def format_api_response(response: SanitizedResponse) -> None:
    """Print a sanitized response using the global output system.

    Writes the status line (e.g. ``HTTP 200``) to stderr and the body to
    stdout, formatted according to ``--output``. Error statuses are shown as
    a warning, which ``--quiet`` does not hide.
    """
    output = get_output()
    if response.status >= 400:
        output.warning(f"HTTP {response.status}")
    else:
        output.info(f"HTTP {response.status}")
    if response.body is not None:
        content_type = response.headers.get("content-type", "application/json")
        output.format_response(response.body, content_type)
