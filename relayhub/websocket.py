"""WebSocket transport for relay endpoints.

Handles the real-time channel between the hub and both endpoint roles.
Every frame is ``{"event": ..., "data": {...}}``; see :mod:`relayhub.events`.

Inbound frames are applied to the relay engine one at a time, on the event
loop. Outbound frames go through a per-channel queue drained by a writer
task, so the engine never waits on a socket.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from relayhub import events
from relayhub.channel import Channel
from relayhub.relay import RelayEngine

logger = logging.getLogger(__name__)


class WebSocketChannel(Channel):
    """Tracks one connected endpoint's WebSocket and its outbound queue."""

    def __init__(self, websocket: WebSocket, channel_id: str | None = None) -> None:
        super().__init__(channel_id)
        self.websocket = websocket
        self.connected_at = time.time()
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._writer: asyncio.Task | None = None

    def start(self) -> None:
        """Start the writer task draining the outbound queue."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop())

    def send(self, event: str, data: dict[str, Any]) -> None:
        self._outbox.put_nowait(events.make_frame(event, data))

    @property
    def pending(self) -> int:
        return self._outbox.qsize()

    async def _write_loop(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                await self.websocket.send_json(frame)
            except Exception:
                logger.exception("Failed to send %s to %s", frame.get("event"), self.id)
                return

    def close(self) -> None:
        """Stop the writer; frames still queued are dropped."""
        if self._writer is not None:
            self._writer.cancel()
            self._writer = None


def _parse_frame(channel: Channel, text: str) -> tuple[str, Any] | None:
    """Decode one inbound frame, ``None`` if it is not a valid envelope."""
    try:
        frame = json.loads(text)
    except (ValueError, RecursionError):
        logger.warning("Undecodable frame from %s ignored", channel.id)
        return None
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        logger.warning("Malformed frame from %s ignored: %r", channel.id, frame)
        return None
    return frame["event"], frame.get("data")


# ── WebSocket handler ─────────────────────────────────────────────


async def relay_ws_handler(websocket: WebSocket) -> None:
    """Handle one endpoint connection.

    Mounted by :func:`relayhub.server.create_app`; expects the app state to
    carry ``engine`` (a :class:`RelayEngine`) and ``connections`` (a dict of
    open channels).
    """
    await websocket.accept()
    engine: RelayEngine = websocket.app.state.engine
    connections: dict[str, WebSocketChannel] = websocket.app.state.connections

    channel = WebSocketChannel(websocket)
    connections[channel.id] = channel
    channel.start()
    logger.info("Client connected: %s (%d open)", channel.id, len(connections))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            text = message.get("text")
            if text is None:
                logger.warning("Non-text frame from %s ignored", channel.id)
                continue

            parsed = _parse_frame(channel, text)
            if parsed is None:
                continue
            event, data = parsed
            if event in (events.TEARDOWN, events.CHANNEL_ERROR):
                logger.warning("Client %s sent reserved event %s, ignored", channel.id, event)
                continue
            engine.dispatch(channel, event, data)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        engine.dispatch(channel, events.CHANNEL_ERROR, {"error": repr(e)})
    finally:
        engine.dispatch(channel, events.TEARDOWN)
        connections.pop(channel.id, None)
        channel.close()
        logger.info("Client disconnected: %s (%d open)", channel.id, len(connections))
