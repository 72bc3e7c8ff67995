"""
In-process change feed.

Routes publish row changes on named channels; WebSocket handlers
subscribe and forward them to clients. Channels in use:

    conversation:{request_id}   message inserts for one negotiation
    requests:{profile_id}       borrow-request changes for a participant
    notifications:{profile_id}  notification inserts/updates for a profile
"""

import asyncio
from collections import defaultdict
from typing import Any, Dict, Optional, Set

from fastapi.encoders import jsonable_encoder

from logging_config import get_logger

logger = get_logger(__name__)

QUEUE_SIZE = 100


def conversation_channel(request_id: str) -> str:
    return f"conversation:{request_id}"


def requests_channel(profile_id: str) -> str:
    return f"requests:{profile_id}"


def notifications_channel(profile_id: str) -> str:
    return f"notifications:{profile_id}"


def change_event(table: str, action: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"event": f"{table}.{action}", "data": jsonable_encoder(data)}


class Broker:
    def __init__(self, queue_size: int = QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, channel: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[channel].add(queue)
        logger.debug(f"Subscribed to {channel} ({len(self._subscribers[channel])} listeners)")
        return queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue) -> None:
        listeners = self._subscribers.get(channel)
        if not listeners:
            return
        listeners.discard(queue)
        if not listeners:
            del self._subscribers[channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def publish(self, channel: str, event: Dict[str, Any]) -> int:
        """Fan an event out to every listener; returns how many received it."""
        delivered = 0
        for queue in list(self._subscribers.get(channel, ())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping {event.get('event')} on {channel}: listener queue full")
        return delivered


broker = Broker()


def publish_change(channel: str, table: str, action: str, data: Dict[str, Any],
                   target: Optional[Broker] = None) -> int:
    return (target or broker).publish(channel, change_event(table, action, data))
