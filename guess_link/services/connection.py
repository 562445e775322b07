# guess_link/services/connection.py
import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from guess_link.models.events import GameEvent

logger = logging.getLogger("guess_link.services.connection")  # Logger for this module


class ClientConnection:
    """
    Outbound side of one WebSocket. ``send`` only enqueues, so room code never
    awaits; a writer task drains the bounded queue onto the socket and a
    keep-alive task pushes periodic pings.
    """

    def __init__(self, websocket: WebSocket, max_queue_size: int = 100):
        self.websocket = websocket
        self.client_id: Optional[str] = None
        self.outbound: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self.closed = False
        self._writer_task: Optional[asyncio.Task] = None
        self._keep_alive_task: Optional[asyncio.Task] = None

    def send(self, message: Dict[str, Any]) -> bool:
        if self.closed:
            return False
        try:
            self.outbound.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"C:{self.client_id} - Outbound queue full ({self.outbound.maxsize}). Dropping '{message.get('type')}'.")
            return False
        return True

    def start(self, ping_interval_seconds: float | None = None):
        self._writer_task = asyncio.create_task(self._drain_outbound(), name=f"ws-writer-{self.client_id}")
        if ping_interval_seconds:
            self._keep_alive_task = asyncio.create_task(self._keep_alive(ping_interval_seconds), name=f"ws-ping-{self.client_id}")

    async def _drain_outbound(self):
        while True:
            message = await self.outbound.get()
            if self.websocket.client_state != WebSocketState.CONNECTED:
                logger.warning(f"C:{self.client_id} - Socket no longer connected before sending '{message.get('type')}'.")
                break
            try:
                await self.websocket.send_json(message)
            except Exception as e:
                logger.exception(f"C:{self.client_id} - Error sending '{message.get('type')}': {e}")
                break
        self.closed = True

    async def _keep_alive(self, interval_seconds: float):
        while not self.closed:
            await asyncio.sleep(interval_seconds)
            self.send(GameEvent("ping").to_dict())

    async def close(self):
        self.closed = True
        tasks = [task for task in (self._writer_task, self._keep_alive_task) if task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug(f"C:{self.client_id} - Connection tasks stopped.")
