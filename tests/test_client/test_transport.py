"""Tests for the httpx-backed transport."""

from __future__ import annotations

import asyncio
import io

import httpx
import pytest

from apitree.client import DispatchOptions, FormData, HttpxTransport
from apitree.exceptions import TransportError
from apitree.models import RequestConfig


def options(**kwargs) -> DispatchOptions:
    kwargs.setdefault("url", "https://x.test/upload")
    kwargs.setdefault("method", "post")
    return DispatchOptions(**kwargs)


class TestRequestKwargs:
    def setup_method(self) -> None:
        self.transport = HttpxTransport(RequestConfig(timeout=5.0))

    def test_basic_fields(self) -> None:
        kwargs = self.transport._request_kwargs(options(headers={"X-Count": 3}))
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "https://x.test/upload"
        assert kwargs["headers"] == {"X-Count": "3"}
        assert kwargs["timeout"] == 5.0
        assert "content" not in kwargs

    def test_async_requests_have_no_timeout(self) -> None:
        assert self.transport._request_kwargs(options(async_=True))["timeout"] is None

    @pytest.mark.parametrize(
        "data, content",
        [
            ("text", "text"),
            (b"bytes", b"bytes"),
            (bytearray(b"array"), b"array"),
            (12, "12"),
            (1.5, "1.5"),
            (True, "true"),
        ],
    )
    def test_content(self, data, content) -> None:
        assert self.transport._request_kwargs(options(data=data))["content"] == content

    def test_file_object_is_read(self) -> None:
        kwargs = self.transport._request_kwargs(options(data=io.BytesIO(b"file body")))
        assert kwargs["content"] == b"file body"

    def test_form_data_drops_content_type(self) -> None:
        form = FormData()
        form.append("name", "x")
        kwargs = self.transport._request_kwargs(
            options(data=form, headers={"Content-Type": "multipart/form-data", "X-A": "1"})
        )
        assert kwargs["headers"] == {"X-A": "1"}
        assert kwargs["files"] == [("name", (None, "x"))]


class TestSend:
    def test_round_trip(self, recorder) -> None:
        transport = recorder.transport()
        response = transport.send(options(data='{"a": 1}', headers={"content-type": "application/json"}))
        assert response.status_code == 200
        assert recorder.last.method == "POST"
        assert recorder.last.content == b'{"a": 1}'

    def test_multipart(self, recorder) -> None:
        form = FormData()
        form.append("field", "value")
        form.append("file", b"\x00binary")
        recorder.transport().send(options(data=form))
        content_type = recorder.last.headers["content-type"]
        assert content_type.startswith("multipart/form-data; boundary=")
        assert b'name="field"' in recorder.last.content
        assert b"\x00binary" in recorder.last.content

    def test_error_wrapped(self, recorder) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        recorder.handler = fail
        with pytest.raises(TransportError, match="POST https://x.test/upload failed: too slow"):
            recorder.transport().send(options())

    def test_async_send(self, recorder) -> None:
        response = asyncio.run(recorder.transport().asend(options(async_=True)))
        assert response.status_code == 200
        assert recorder.last.method == "POST"


class TestLifecycle:
    def test_close_releases_client(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport = HttpxTransport(client=client)
        with transport:
            pass
        assert client.is_closed
        assert transport._client is None

    def test_client_built_lazily_from_config(self) -> None:
        transport = HttpxTransport(RequestConfig(timeout=7.0, follow_redirects=False))
        assert transport._client is None
        client = transport._sync_client()
        assert client.timeout.read == 7.0
        assert client.follow_redirects is False
        assert transport._sync_client() is client
        transport.close()

    def test_aclose(self) -> None:
        async_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        transport = HttpxTransport(async_client=async_client)
        asyncio.run(transport.aclose())
        assert async_client.is_closed
        assert transport._async_client is None
