"""HTTP transport for the provider endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pylocate._constants import USER_AGENT
from pylocate.exceptions import TransientNetworkError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderResponse:
    """Raw provider reply.

    ``body`` is the decoded JSON document, or ``None`` when the reply was
    not valid JSON (``malformed`` is then ``True``).
    """

    status: int
    text: str
    body: Any = None
    malformed: bool = False

    @classmethod
    def from_text(cls, status: int, text: str) -> ProviderResponse:
        try:
            body = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            return cls(status=status, text=text, body=None, malformed=True)
        return cls(status=status, text=text, body=body)


class HttpTransport(Protocol):
    """Structural HTTP interface used by the endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`AiohttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        url: str,
        *,
        stage: str,
        params: Mapping[str, str],
        json_body: Mapping[str, Any] | None = None,
    ) -> ProviderResponse:
        ...


class AiohttpTransport:
    """aiohttp-backed transport returning unparsed-status provider replies.

    Status codes are not interpreted here; classification happens in the
    endpoint layer so every stage shares one policy.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 30.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def request(
        self,
        method: str,
        url: str,
        *,
        stage: str,
        params: Mapping[str, str],
        json_body: Mapping[str, Any] | None = None,
    ) -> ProviderResponse:
        headers = {"user-agent": USER_AGENT, "accept": "application/json"}
        data: str | None = None
        if json_body is not None:
            headers["content-type"] = "application/json; charset=UTF-8"
            data = json.dumps(json_body, separators=(",", ":"))

        _logger.debug("%s %s (%s)", method, url, stage)

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params),
                data=data,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TransientNetworkError(
                f"Request to {stage} endpoint failed: {exc!r}",
                stage=stage,
            ) from exc

        return ProviderResponse.from_text(status, text)
