"""Endpoint registry — the live devices and controllers known to the hub."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

from relayhub.channel import Channel
from relayhub.events import DEFAULT_DISPLAY_NAME

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base class for registry lookup failures."""


class TargetNotFound(RegistryError):
    """The caller is not a controller or the requested device is unknown."""


class NoBindingOrGone(RegistryError):
    """The controller has no usable binding.

    ``dangling`` is ``True`` when a binding exists but its device has
    disconnected, ``False`` when there is no binding (or no controller).
    """

    def __init__(self, message: str, dangling: bool = False) -> None:
        super().__init__(message)
        self.dangling = dangling


class Removed(str, enum.Enum):
    DEVICE = "device"
    CONTROLLER = "controller"
    NONE = "none"


@dataclass
class ControlledEndpoint:
    id: str
    display_name: str
    channel: Channel

    def summary(self) -> dict[str, str]:
        return {"id": self.id, "displayName": self.display_name}


@dataclass
class ControllerEndpoint:
    id: str
    channel: Channel
    bound_target_id: str | None = None


class EndpointRegistry:
    """In-memory registry of registered endpoints, keyed by channel id.

    A channel id lives in at most one of the two collections. Bindings are
    not swept when their device goes away; :meth:`resolve_target` reports
    the dangling reference instead.

    Not thread-safe: all calls must come from the single event-processing
    path.
    """

    def __init__(self, default_display_name: str = DEFAULT_DISPLAY_NAME) -> None:
        self._devices: dict[str, ControlledEndpoint] = {}
        self._controllers: dict[str, ControllerEndpoint] = {}
        self._default_display_name = default_display_name

    # ── Registration ───────────────────────────────────────────────

    def register_device(self, channel: Channel, display_name: str | None = None) -> ControlledEndpoint:
        """Insert or overwrite the device entry for *channel*."""
        self._controllers.pop(channel.id, None)
        device = self._devices.get(channel.id)
        name = display_name or self._default_display_name
        if device is None:
            device = ControlledEndpoint(id=channel.id, display_name=name, channel=channel)
            self._devices[channel.id] = device
        else:
            # Overwrite in place so roster order stays stable
            device.display_name = name
            device.channel = channel
        return device

    def register_controller(self, channel: Channel) -> ControllerEndpoint:
        """Insert the controller entry for *channel*, resetting any binding."""
        self._devices.pop(channel.id, None)
        controller = ControllerEndpoint(id=channel.id, channel=channel)
        self._controllers[channel.id] = controller
        return controller

    # ── Binding ────────────────────────────────────────────────────

    def bind_controller(self, channel_id: str, target_id: str) -> None:
        """Bind controller *channel_id* to device *target_id*.

        Raises:
            TargetNotFound: *channel_id* is not a controller or *target_id*
                is not a registered device. Nothing is changed.
        """
        controller = self._controllers.get(channel_id)
        if controller is None or target_id not in self._devices:
            raise TargetNotFound(target_id)
        controller.bound_target_id = target_id

    def resolve_target(self, channel_id: str) -> ControlledEndpoint:
        """Return the device controller *channel_id* is bound to.

        Raises:
            NoBindingOrGone: unregistered controller, no binding, or the
                bound device has disconnected (``dangling=True``).
        """
        controller = self._controllers.get(channel_id)
        if controller is None:
            raise NoBindingOrGone(f"{channel_id} is not a registered controller")
        if controller.bound_target_id is None:
            raise NoBindingOrGone(f"{channel_id} has no target selected")
        device = self._devices.get(controller.bound_target_id)
        if device is None:
            raise NoBindingOrGone(
                f"{controller.bound_target_id} is no longer connected", dangling=True,
            )
        return device

    # ── Removal & queries ──────────────────────────────────────────

    def remove_endpoint(self, channel_id: str) -> Removed:
        """Drop *channel_id* from whichever collection holds it."""
        if self._devices.pop(channel_id, None) is not None:
            return Removed.DEVICE
        if self._controllers.pop(channel_id, None) is not None:
            return Removed.CONTROLLER
        return Removed.NONE

    def list_devices(self) -> list[dict[str, str]]:
        """Snapshot of ``{id, displayName}`` in registration order."""
        return [device.summary() for device in self._devices.values()]

    def controllers(self) -> list[ControllerEndpoint]:
        return list(self._controllers.values())

    def get_device(self, channel_id: str) -> ControlledEndpoint | None:
        return self._devices.get(channel_id)

    def get_controller(self, channel_id: str) -> ControllerEndpoint | None:
        return self._controllers.get(channel_id)

    def kind_of(self, channel_id: str) -> Removed:
        """Which collection holds *channel_id* (``Removed.NONE`` if neither)."""
        if channel_id in self._devices:
            return Removed.DEVICE
        if channel_id in self._controllers:
            return Removed.CONTROLLER
        return Removed.NONE

    def stats(self) -> dict[str, Any]:
        return {"devices": len(self._devices), "controllers": len(self._controllers)}
