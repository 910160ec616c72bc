"""Relay engine — dispatches endpoint events against the registry.

Each call to :meth:`RelayEngine.handle` processes exactly one inbound event
and returns the messages it produces; nothing is sent until the event has
been fully applied to the registry. :meth:`RelayEngine.dispatch` is the
convenience used by transports: handle, then hand every message to its
channel.

Supported events:

  register       {as: device|controller, displayName?}
  selectTarget   {targetId}
  relayCommand   {...opaque payload...}
  teardown       channel closed
  channelError   transport failure (logged only)
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from relayhub import events
from relayhub.channel import Channel
from relayhub.events import Outbound, RegisterPayload, Role, SelectTargetPayload
from relayhub.notifier import broadcast_device_roster
from relayhub.registry import (
    EndpointRegistry,
    NoBindingOrGone,
    Removed,
    TargetNotFound,
)

logger = logging.getLogger(__name__)


class RelayEngine:
    """Protocol state machine for one hub.

    Args:
        registry: The registry this engine owns for its lifetime.
    """

    def __init__(self, registry: EndpointRegistry | None = None) -> None:
        self.registry = registry if registry is not None else EndpointRegistry()
        self._handlers = {
            events.REGISTER: self._handle_register,
            events.SELECT_TARGET: self._handle_select_target,
            events.RELAY_COMMAND: self._handle_relay_command,
            events.TEARDOWN: self._handle_teardown,
            events.CHANNEL_ERROR: self._handle_channel_error,
        }

    def handle(self, channel: Channel, event: str, data: Any = None) -> list[Outbound]:
        """Apply one event from *channel* and return the resulting messages."""
        name = events.normalize_event(event)
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Unknown event from %s: %s", channel.id, event)
            return []
        return handler(channel, data if data is not None else {})

    def dispatch(self, channel: Channel, event: str, data: Any = None) -> list[Outbound]:
        """Handle an event and deliver every resulting message."""
        outbound = self.handle(channel, event, data)
        for message in outbound:
            message.channel.send(message.event, message.data)
        return outbound

    # ── Handlers ───────────────────────────────────────────────────

    def _handle_register(self, channel: Channel, data: Any) -> list[Outbound]:
        try:
            payload = RegisterPayload.model_validate(data)
        except ValidationError:
            logger.warning("Malformed register from %s: %r", channel.id, data)
            return []

        role = payload.role
        if role is None:
            logger.warning("Ignoring register from %s with unknown role %r", channel.id, payload.as_)
            return []

        previous = self.registry.kind_of(channel.id)

        if role is Role.DEVICE:
            device = self.registry.register_device(channel, payload.name)
            logger.info("Device registered: %s (%s)", device.id, device.display_name)
            out = [Outbound(channel, events.REGISTER, events.registered(device.id))]
            return out + broadcast_device_roster(self.registry)

        controller = self.registry.register_controller(channel)
        logger.info("Controller registered: %s", controller.id)
        out = [Outbound(channel, events.REGISTER, events.registered())]
        if previous is Removed.DEVICE:
            # Switching roles removed a device, so every controller needs the new roster
            return out + broadcast_device_roster(self.registry)
        out.append(Outbound(
            channel, events.DEVICE_LIST, events.device_list(self.registry.list_devices()),
        ))
        return out

    def _handle_select_target(self, channel: Channel, data: Any) -> list[Outbound]:
        if self.registry.get_controller(channel.id) is None:
            logger.debug("Dropping selectTarget from non-controller %s", channel.id)
            return []

        try:
            target_id = SelectTargetPayload.model_validate(data).targetId
            self.registry.bind_controller(channel.id, target_id)
        except (ValidationError, TargetNotFound):
            logger.info("Controller %s selected unknown target: %r", channel.id, data)
            return [Outbound(channel, events.ERROR, events.error(events.MSG_TARGET_NOT_FOUND))]

        logger.info("Controller %s selected device %s", channel.id, target_id)
        return [Outbound(channel, events.SELECTION_CHANGED, events.selection_changed(target_id))]

    def _handle_relay_command(self, channel: Channel, data: Any) -> list[Outbound]:
        try:
            target = self.registry.resolve_target(channel.id)
        except NoBindingOrGone as e:
            logger.info("Cannot relay command from %s: %s", channel.id, e)
            message = events.MSG_TARGET_GONE if e.dangling else events.MSG_NO_TARGET
            return [Outbound(channel, events.ERROR, events.error(message))]

        logger.info("Relaying command from %s to %s", channel.id, target.id)
        return [Outbound(target.channel, events.COMMAND, data)]

    def _handle_teardown(self, channel: Channel, data: Any) -> list[Outbound]:
        removed = self.registry.remove_endpoint(channel.id)
        if removed is Removed.DEVICE:
            logger.info("Device disconnected: %s", channel.id)
            return broadcast_device_roster(self.registry)
        if removed is Removed.CONTROLLER:
            logger.info("Controller disconnected: %s", channel.id)
        return []

    def _handle_channel_error(self, channel: Channel, data: Any) -> list[Outbound]:
        detail = data.get("error", data) if isinstance(data, dict) else data
        logger.error("Channel error for %s: %s", channel.id, detail)
        return []
