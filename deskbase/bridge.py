"""Named request handlers between the presentation layer and the data-access service."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List

from deskbase.errors import InvalidArgumentsError, UnknownChannelError
from deskbase.service import DatabaseService

# Configure logging
logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


class Bridge:
    """
    Table of channel names to async handlers.

    invoke() forwards arguments unchanged and hands back the handler's
    result. Failures are logged with the channel name and re-raised as is.
    """

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}

    def handle(self, channel: str, handler: Handler):
        """
        Register a handler for a channel.

        Raises:
            ValueError: If the channel already has a handler
        """
        if channel in self._handlers:
            raise ValueError(f"Channel already registered: {channel}")
        self._handlers[channel] = handler
        logger.debug(f"Registered channel: {channel}")

    def channels(self) -> List[str]:
        return sorted(self._handlers)

    async def invoke(self, channel: str, *args, **kwargs) -> Any:
        """
        Invoke the handler registered for a channel.

        Args:
            channel: Channel name, e.g. "create-user"
            *args: Positional arguments for the handler
            **kwargs: Keyword arguments for the handler

        Returns:
            Any: Whatever the handler returns

        Raises:
            UnknownChannelError: If no handler is registered for the channel
            InvalidArgumentsError: If the arguments do not fit the handler
        """
        handler = self._handlers.get(channel)
        if handler is None:
            logger.warning(f"Unknown channel: {channel}")
            raise UnknownChannelError(f"No handler registered for '{channel}'")

        try:
            inspect.signature(handler).bind(*args, **kwargs)
        except TypeError as e:
            logger.warning(f"Invalid arguments for {channel}: {e}")
            raise InvalidArgumentsError(f"Invalid arguments for '{channel}': {e}") from e

        logger.info(f"Handling {channel}")
        try:
            return await handler(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error handling {channel}: {e}")
            raise


def register_database_handlers(bridge: Bridge, service: DatabaseService) -> Bridge:
    """Expose every data-access operation of the service on the bridge."""
    bridge.handle("create-user", service.create_user)
    bridge.handle("get-user", service.get_user)
    bridge.handle("get-all-users", service.get_all_users)
    bridge.handle("update-user", service.update_user)
    bridge.handle("delete-user", service.delete_user)

    bridge.handle("create-post", service.create_post)
    bridge.handle("get-post", service.get_post)
    bridge.handle("get-all-posts", service.get_all_posts)
    bridge.handle("update-post", service.update_post)
    bridge.handle("delete-post", service.delete_post)

    bridge.handle("set-setting", service.set_setting)
    bridge.handle("get-setting", service.get_setting)
    bridge.handle("get-all-settings", service.get_all_settings)
    return bridge
