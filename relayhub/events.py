"""Relay protocol vocabulary.

Every frame exchanged with an endpoint is a JSON object::

    {"event": "<name>", "data": {...}}

  Endpoint → Hub:
    register, selectTarget, relayCommand

  Hub → Endpoint:
    register (reply), deviceList, selectionChanged, command, error

Channel lifecycle (``teardown``, ``channelError``) is signalled by the
connection layer, never sent over the wire.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from relayhub.channel import Channel

# ── Event names ───────────────────────────────────────────────────

REGISTER = "register"
SELECT_TARGET = "selectTarget"
RELAY_COMMAND = "relayCommand"
TEARDOWN = "teardown"
CHANNEL_ERROR = "channelError"

DEVICE_LIST = "deviceList"
SELECTION_CHANGED = "selectionChanged"
COMMAND = "command"
ERROR = "error"

DEFAULT_DISPLAY_NAME = "Unnamed Device"

# Error wording sent back to the caller
MSG_TARGET_NOT_FOUND = "target not found"
MSG_NO_TARGET = "no target selected"
MSG_TARGET_GONE = "target gone"

# First-generation event names still spoken by older endpoints
_LEGACY_EVENTS = {
    "selectAndroid": SELECT_TARGET,
    "adbCommand": RELAY_COMMAND,
}


class Role(str, enum.Enum):
    """Role an endpoint registers under."""

    DEVICE = "device"
    CONTROLLER = "controller"

    @classmethod
    def parse(cls, value: Any) -> Role | None:
        """Map a wire value (current or legacy) to a role, ``None`` if unknown."""
        if not isinstance(value, str):
            return None
        return _ROLE_ALIASES.get(value)


_ROLE_ALIASES = {
    "device": Role.DEVICE,
    "controller": Role.CONTROLLER,
    "android": Role.DEVICE,
    "pc": Role.CONTROLLER,
}


# ── Inbound payloads ──────────────────────────────────────────────


class RegisterPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    as_: Any = Field(default=None, alias="as")
    displayName: str | None = None
    deviceName: str | None = None

    @field_validator("displayName", "deviceName", mode="before")
    @classmethod
    def coerce_name(cls, value: Any) -> str | None:
        # Numbers become their text; anything else unusable falls back to the default name
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return None

    @property
    def role(self) -> Role | None:
        return Role.parse(self.as_)

    @property
    def name(self) -> str | None:
        return self.displayName or self.deviceName


class SelectTargetPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    targetId: str


# ── Outbound messages ─────────────────────────────────────────────


@dataclass
class Outbound:
    """A message the hub wants delivered to one channel."""

    channel: Channel
    event: str
    data: dict[str, Any] = field(default_factory=dict)

    def frame(self) -> dict[str, Any]:
        return make_frame(self.event, self.data)


def make_frame(event: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Wrap *event* and *data* in the wire envelope."""
    return {"event": event, "data": data if data is not None else {}}


def normalize_event(event: str) -> str:
    """Translate legacy event names to the current vocabulary."""
    return _LEGACY_EVENTS.get(event, event)


def registered(endpoint_id: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {"status": "success"}
    if endpoint_id is not None:
        data["id"] = endpoint_id
    return data


def device_list(devices: list[dict[str, str]]) -> dict[str, Any]:
    return {"devices": devices}


def selection_changed(selected_id: str) -> dict[str, Any]:
    return {"selectedId": selected_id}


def error(message: str) -> dict[str, Any]:
    return {"message": message}
