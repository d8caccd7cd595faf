"""HTTP-backed executor for api nodes.

HttpApiExecutor performs a real request for ``api`` nodes instead of the
simulated call and delegates every other node type to a fallback
executor (BuiltinExecutor by default).

api node config keys:
    url: Request URL (required).
    method: HTTP method, default GET.
    headers: Optional mapping of request headers.
    body: Optional JSON body.

The result is the merged input plus ``apiData`` (decoded JSON, or text
for non-JSON responses) and ``statusCode``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from storyflow.core.executor.base import NodeExecutor, NodeFailure
from storyflow.core.executor.builtin import BuiltinExecutor
from storyflow.core.types import NodeType

if TYPE_CHECKING:
    from storyflow.config import EngineSettings
    from storyflow.core.graph.model import Node

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


class HttpApiExecutor:
    """Executor that sends real HTTP requests for api nodes.

    The aiohttp session is created lazily on first use and must be
    released with close() (or by using the executor as an async context
    manager).

    Args:
        fallback: Executor for non-api node types. Defaults to a
            BuiltinExecutor built from settings.
        settings: Engine settings for the default fallback.
        timeout: Total request timeout in seconds.
        headers: Headers sent with every request.

    Example:
        >>> async with HttpApiExecutor() as executor:
        ...     result = await execute_workflow(nodes, connections, executor=executor)
    """

    def __init__(
        self,
        fallback: NodeExecutor | None = None,
        settings: EngineSettings | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._fallback = fallback or BuiltinExecutor(settings)
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def __aenter__(self) -> HttpApiExecutor:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP session, if one was opened."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_http_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    headers=self._headers,
                    timeout=aiohttp.ClientTimeout(total=self._timeout),
                )
            return self._session

    async def execute(self, node: Node, merged_input: dict[str, Any]) -> dict[str, Any]:
        if node.type != NodeType.API.value:
            return await self._fallback.execute(node, merged_input)

        url = node.config.get("url")
        if not url:
            raise NodeFailure("API call failed: No URL configured")

        method = str(node.config.get("method") or "GET").upper()
        request_kwargs: dict[str, Any] = {}
        if node.config.get("headers"):
            request_kwargs["headers"] = dict(node.config["headers"])
        if node.config.get("body") is not None:
            request_kwargs["json"] = node.config["body"]

        session = await self._get_http_session()
        logger.debug("api_request: node_id=%s, method=%s, url=%s", node.id, method, url)

        try:
            async with session.request(method, url, **request_kwargs) as resp:
                if resp.content_type == "application/json":
                    payload: Any = await resp.json()
                else:
                    payload = await resp.text()
                status = resp.status
        except TimeoutError:
            raise NodeFailure(f"API call failed: {url} timed out") from None
        except aiohttp.ClientError as e:
            raise NodeFailure(f"API call failed: {url} ({e})") from e

        if status >= 400:
            raise NodeFailure(f"API call failed: {url} returned HTTP {status}")

        return {**merged_input, "apiData": payload, "statusCode": status}
