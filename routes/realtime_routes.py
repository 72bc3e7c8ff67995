import asyncio
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from typing import Any, Dict, Optional
from dependencies import load_request_for_participant, profile_for_user
from realtime import broker, conversation_channel, notifications_channel, requests_channel
from utils import verify_token
from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/ws", tags=["realtime"])


async def _authenticate(websocket: WebSocket, token: Optional[str]) -> Optional[Dict[str, Any]]:
    user_id = verify_token(token) if token else None
    profile = await profile_for_user(user_id) if user_id else None
    if not profile:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    return profile


async def _drain(websocket: WebSocket) -> None:
    """Consume client frames until the socket closes."""
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        event = await queue.get()
        await websocket.send_json(event)


async def stream_channel(websocket: WebSocket, channel: str) -> None:
    await websocket.accept()
    queue = broker.subscribe(channel)
    receiver = asyncio.create_task(_drain(websocket))
    sender = asyncio.create_task(_forward(websocket, queue))
    try:
        done, pending = await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception() and not isinstance(task.exception(), WebSocketDisconnect):
                logger.warning(f"Stream on {channel} ended with {task.exception()!r}")
    finally:
        broker.unsubscribe(channel, queue)
        logger.debug(f"Client left {channel}")


@router.websocket("/conversations/{request_id}")
async def conversation_feed(websocket: WebSocket, request_id: str, token: Optional[str] = None):
    profile = await _authenticate(websocket, token)
    if profile is None:
        return
    try:
        await load_request_for_participant(request_id, profile)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await stream_channel(websocket, conversation_channel(request_id))


@router.websocket("/notifications")
async def notification_feed(websocket: WebSocket, token: Optional[str] = None):
    profile = await _authenticate(websocket, token)
    if profile is None:
        return
    await stream_channel(websocket, notifications_channel(profile["id"]))


@router.websocket("/requests")
async def request_feed(websocket: WebSocket, token: Optional[str] = None):
    profile = await _authenticate(websocket, token)
    if profile is None:
        return
    await stream_channel(websocket, requests_channel(profile["id"]))
