"""Connection channel contract shared by the relay engine and transports."""

from __future__ import annotations

import abc
import uuid
from typing import Any


class Channel(abc.ABC):
    """One endpoint's bidirectional, message-framed connection.

    The identifier is assigned once and stays stable for the lifetime of
    the connection. :meth:`send` must never block or suspend: the relay
    engine calls it while processing an event and expects to continue
    immediately.
    """

    def __init__(self, channel_id: str | None = None) -> None:
        self.id = channel_id or uuid.uuid4().hex

    @abc.abstractmethod
    def send(self, event: str, data: dict[str, Any]) -> None:
        """Queue *event* with *data* for delivery to the endpoint."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
