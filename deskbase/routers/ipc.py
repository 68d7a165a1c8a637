"""IPC router carrying bridge invocations from the presentation layer."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from deskbase.bridge import Bridge
from deskbase.errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    DeskbaseError,
    InvalidArgumentsError,
    NotFoundError,
    NotInitializedError,
    UnknownChannelError,
)
from deskbase.schemas import InvokeRequest

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ipc", tags=["IPC"])

ERROR_STATUS = {
    UnknownChannelError: status.HTTP_404_NOT_FOUND,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidArgumentsError: status.HTTP_400_BAD_REQUEST,
    ConstraintViolationError: status.HTTP_409_CONFLICT,
    NotInitializedError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ConnectionFailureError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_bridge(request: Request) -> Bridge:
    """Dependency returning the bridge attached to the application."""
    return request.app.state.bridge


def error_status(error: DeskbaseError) -> int:
    """HTTP status code reported for a domain error."""
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.get("/channels")
def list_channels(bridge: Bridge = Depends(get_bridge)):
    """List the channel names the bridge answers."""
    return {"channels": bridge.channels()}


@router.post("/{channel}")
async def invoke_channel(
    channel: str,
    payload: Optional[InvokeRequest] = None,
    bridge: Bridge = Depends(get_bridge)
):
    """
    Invoke a bridge channel with positional and keyword arguments.

    Args:
        channel: Channel name, e.g. "create-user"
        payload: Arguments for the channel handler; omitted means none
        bridge: Application bridge

    Returns:
        dict: Channel name and the handler's result

    Raises:
        HTTPException: If the channel is unknown or the operation fails
    """
    if payload is None:
        payload = InvokeRequest()

    try:
        result = await bridge.invoke(channel, *payload.args, **payload.kwargs)
    except DeskbaseError as e:
        raise HTTPException(status_code=error_status(e), detail=str(e))
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {e}"
        )

    return {"channel": channel, "result": result}
