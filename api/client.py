"""HTTP client for the chat store.

Provides the two collaborators the core depends on: the atomic snapshot
fetch and send-and-stream. Token refresh and retries are out of scope.
"""

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from messaging.stream_channel import StreamChannel
from messaging.trees.data import ChatSnapshot

from .errors import map_error
from .models import CompleteChatData, StreamMessageRequest
from .rate_limit import RequestRateLimiter

API_PREFIX = "/api/v1/chats"


class ClientConfig(BaseModel):
    """Connection settings for ChatApiClient."""

    base_url: str = "http://localhost:8000"
    access_token: str | None = None
    rate_limit: int = Field(40, ge=1)
    rate_window: float = Field(60.0, gt=0)
    http_read_timeout: float = 300.0
    http_write_timeout: float = 10.0
    http_connect_timeout: float = 2.0


class ChatApiClient:
    """Chat store client over a shared httpx.AsyncClient."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        headers = {}
        if config.access_token:
            headers["Authorization"] = f"Bearer {config.access_token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(
                config.http_read_timeout,
                read=config.http_read_timeout,
                write=config.http_write_timeout,
                connect=config.http_connect_timeout,
            ),
            transport=transport,
        )
        self._limiter = RequestRateLimiter(config.rate_limit, config.rate_window)

    @property
    def limiter(self) -> RequestRateLimiter:
        return self._limiter

    async def get_complete_chat(self, chat_id: str) -> ChatSnapshot:
        """Fetch the full tree + message snapshot for a chat.

        Raises:
            ChatApiError: on HTTP errors (see api.errors.map_error)
            TransportFailure: on timeouts and connection errors
            InvalidTreeError: if the tree violates snapshot invariants
        """
        await self._limiter.wait_if_blocked()
        try:
            response = await self._client.get(f"{API_PREFIX}/{chat_id}/complete")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"CHAT_API: failed to load chat {chat_id}: {e}")
            raise map_error(e, self._limiter) from e

        data = CompleteChatData.model_validate(response.json())
        return data.to_snapshot()

    def open_stream(
        self,
        chat_id: str,
        content: str,
        *,
        parent_id: str | None = None,
        model_id: str | None = None,
    ) -> StreamChannel:
        """Create a channel that POSTs the message and streams the reply.

        The request is only sent once the channel is iterated; failures
        then surface as a single ``error`` event.
        """
        body = StreamMessageRequest(
            content=content,
            parent_message_uuid=parent_id,
            model_id=model_id,
        )

        async def open_response() -> httpx.Response:
            await self._limiter.wait_if_blocked()
            request = self._client.build_request(
                "POST",
                f"{API_PREFIX}/{chat_id}/messages/stream",
                json=body.model_dump(exclude_none=True),
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            )
            try:
                response = await self._client.send(request, stream=True)
            except httpx.HTTPError as e:
                raise map_error(e, self._limiter) from e

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                await response.aclose()
                raise map_error(e, self._limiter) from e
            return response

        return StreamChannel(open_response, label=f"chat={chat_id}")

    async def aclose(self) -> None:
        await self._client.aclose()
