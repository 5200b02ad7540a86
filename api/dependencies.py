"""Construction of the chat client and coordinator from settings."""

from collections.abc import Awaitable, Callable

from loguru import logger

from config.logging_config import configure_logging
from config.settings import Settings
from config.settings import get_settings as _get_settings
from messaging.coordinator import ChatCoordinator
from messaging.session import ChatSession

from .client import ChatApiClient, ClientConfig


def get_settings() -> Settings:
    """Get application settings."""
    return _get_settings()


def build_client_config(settings: Settings) -> ClientConfig:
    return ClientConfig(
        base_url=settings.api_base_url,
        access_token=settings.access_token,
        rate_limit=settings.request_rate_limit,
        rate_window=settings.request_rate_window,
        http_read_timeout=settings.http_read_timeout,
        http_write_timeout=settings.http_write_timeout,
        http_connect_timeout=settings.http_connect_timeout,
    )


class ClientFactory:
    """Builds the API client and coordinator lazily and owns their lifetime."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        configure_logging(self.settings.log_file)
        self._client: ChatApiClient | None = None
        self._coordinator: ChatCoordinator | None = None

    def get_client(self) -> ChatApiClient:
        """Get or create the client instance."""
        if self._client is None:
            self._client = ChatApiClient(build_client_config(self.settings))
            logger.info(f"Chat API client initialized: {self.settings.api_base_url}")
        return self._client

    def get_coordinator(
        self,
        update_callback: Callable[[ChatSession], Awaitable[None]] | None = None,
    ) -> ChatCoordinator:
        """Get or create the coordinator bound to this factory's client."""
        if self._coordinator is None:
            self._coordinator = ChatCoordinator(
                self.get_client(),
                reload_delay=self.settings.reload_delay,
                update_callback=update_callback,
                layout_settings=self.settings.layout,
            )
        elif update_callback is not None:
            self._coordinator.set_update_callback(update_callback)
        return self._coordinator

    async def aclose(self) -> None:
        """Close open channels and the HTTP client."""
        if self._coordinator is not None:
            await self._coordinator.close()
            self._coordinator = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.debug("Client factory cleanup completed")
