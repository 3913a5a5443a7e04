"""Typed view of the response fields the download core reads."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

import httpx


@dataclass(frozen=True)
class ResponseMetadata:
    """Read-only response metadata: request URL path plus two headers."""

    url_path: str
    content_disposition: str | None = None
    last_modified: str | None = None

    @classmethod
    def from_response(cls, response: httpx.Response) -> ResponseMetadata:
        """Build from an httpx response, using the URL of the final request."""
        headers = response.headers
        return cls(
            url_path=response.request.url.path,
            content_disposition=headers.get("Content-Disposition"),
            last_modified=headers.get("Last-Modified"),
        )

    @classmethod
    def from_url(
        cls, url: str, headers: Mapping[str, str] | None = None
    ) -> ResponseMetadata:
        """Build from a raw URL and header mapping. Query strings are dropped."""
        lookup = httpx.Headers(dict(headers or {}))
        return cls(
            url_path=unquote(urlsplit(url).path),
            content_disposition=lookup.get("Content-Disposition"),
            last_modified=lookup.get("Last-Modified"),
        )
