"""Device roster fan-out to controllers."""

from __future__ import annotations

import logging

from relayhub import events
from relayhub.events import Outbound
from relayhub.registry import EndpointRegistry

logger = logging.getLogger(__name__)


def broadcast_device_roster(registry: EndpointRegistry) -> list[Outbound]:
    """Build one identical ``deviceList`` message per registered controller.

    The roster is computed once, so every controller sees the same
    snapshot.
    """
    devices = registry.list_devices()
    controllers = registry.controllers()
    logger.debug(
        "Broadcasting roster of %d device(s) to %d controller(s)",
        len(devices), len(controllers),
    )
    return [
        Outbound(controller.channel, events.DEVICE_LIST, events.device_list(devices))
        for controller in controllers
    ]
