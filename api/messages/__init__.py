"""Inbound message endpoint called by the chat bridge."""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status
from pydantic import BaseModel

from gateway import InboundMessage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/messages",
    tags=["Messages"]
)


class MessageAccepted(BaseModel):
    message_id: str
    status: str = "accepted"


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def receive_message(
    message: InboundMessage,
    request: Request,
    background_tasks: BackgroundTasks
) -> MessageAccepted:
    """Queue an inbound chat message for handling.

    The message is handled after the response is sent so the bridge never
    waits on ledger or gateway calls.
    """
    router_ = getattr(request.app.state, 'router', None)
    if router_ is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready"
        )

    logger.debug(f"Accepted message {message.message_id} from chat {message.chat_id}")
    background_tasks.add_task(router_.handle, message)
    return MessageAccepted(message_id=message.message_id)
