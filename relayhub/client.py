"""WebSocket client for relay endpoints.

Handles the endpoint side of the protocol for either role:
  Endpoint → Hub: register, selectTarget, relayCommand
  Hub → Endpoint: register, deviceList, selectionChanged, command, error
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.asyncio.client import ClientConnection

from relayhub import events
from relayhub.events import Role

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict], Awaitable[None]]


class RelayClient:
    """Connects one device or controller to a relay hub."""

    def __init__(
        self,
        server_url: str,
        role: Role | str,
        display_name: str | None = None,
        register_timeout: float = 10.0,
    ):
        self.server_url = server_url
        self.role = Role(role)
        self.display_name = display_name
        self.register_timeout = register_timeout

        self._ws: Optional[ClientConnection] = None
        self._handlers: dict[str, MessageHandler] = {}
        self._connected = False
        self._reconnect_delay = 2
        self._max_reconnect_delay = 60

        self.endpoint_id: str | None = None
        self.devices: list[dict[str, str]] = []
        self.selected_id: str | None = None

    def on(self, event: str, handler: MessageHandler) -> None:
        """Register a handler for a hub event; it receives the ``data`` object."""
        self._handlers[event] = handler

    async def connect(self) -> bool:
        """Connect to the hub and register under this client's role."""
        try:
            self._ws = await websockets.connect(
                self.server_url,
                ping_interval=20,
                ping_timeout=10,
                close_timeout=5,
            )
            payload: dict[str, Any] = {"as": self.role.value}
            if self.display_name:
                payload["displayName"] = self.display_name
            await self._send(events.REGISTER, payload)

            reply = await asyncio.wait_for(self._await_registration(), timeout=self.register_timeout)
            if reply.get("status") != "success":
                logger.error("Hub rejected registration: %s", reply)
                await self._discard_socket()
                return False

            self.endpoint_id = reply.get("id", self.endpoint_id)
            self._connected = True
            self._reconnect_delay = 2
            logger.info("Registered with hub as %s (id: %s)", self.role.value, self.endpoint_id)
            return True

        except Exception:
            logger.exception("Failed to connect to %s", self.server_url)
            await self._discard_socket()
            return False

    async def _discard_socket(self) -> None:
        """Close a half-open connection after a failed handshake."""
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except Exception:
            logger.debug("Error closing socket to %s", self.server_url, exc_info=True)

    async def _await_registration(self) -> dict:
        while True:
            frame = json.loads(await self._ws.recv())
            if frame.get("event") == events.REGISTER:
                return frame.get("data") or {}
            await self._dispatch(frame)

    async def _send(self, event: str, data: dict) -> None:
        if self._ws:
            await self._ws.send(json.dumps(events.make_frame(event, data)))

    async def select_target(self, target_id: str) -> None:
        await self._send(events.SELECT_TARGET, {"targetId": target_id})

    async def relay_command(self, payload: dict) -> None:
        """Send an opaque command to the selected device."""
        await self._send(events.RELAY_COMMAND, payload)

    async def _dispatch(self, frame: dict) -> None:
        event = frame.get("event", "")
        data = frame.get("data") or {}

        if event == events.DEVICE_LIST:
            self.devices = list(data.get("devices", []))
        elif event == events.SELECTION_CHANGED:
            self.selected_id = data.get("selectedId")
        elif event == events.ERROR:
            logger.warning("Hub error: %s", data.get("message"))

        handler = self._handlers.get(event)
        if handler:
            try:
                await handler(data)
            except Exception:
                logger.exception("Handler error for %s", event)
        else:
            logger.debug("Unhandled event: %s", event)

    async def listen(self) -> None:
        """Listen for frames from the hub. Blocks until disconnected."""
        if not self._ws:
            return
        try:
            async for raw in self._ws:
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("Non-JSON frame from hub ignored")
                    continue
                await self._dispatch(frame)
        except websockets.ConnectionClosed:
            logger.info("Hub connection closed")
        except Exception:
            logger.exception("WebSocket listen error")
        finally:
            self._connected = False

    async def close(self) -> None:
        if self._ws:
            await self._ws.close()
            self._ws = None
        self._connected = False

    async def run(self) -> None:
        """Connect and listen forever, reconnecting with exponential backoff."""
        while True:
            if await self.connect():
                await self.listen()
            logger.info("Reconnecting in %ds...", self._reconnect_delay)
            await asyncio.sleep(self._reconnect_delay)
            self._reconnect_delay = min(self._reconnect_delay * 2, self._max_reconnect_delay)

    @property
    def connected(self) -> bool:
        return self._connected
