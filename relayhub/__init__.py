"""Relay Hub — rendezvous and command relay between controllers and devices.

Components:
  - Registry: live devices and controllers, plus each controller's binding
  - Relay: protocol state machine for register / selectTarget / relayCommand
  - Notifier: device roster fan-out to controllers
  - WebSocket: transport channel and FastAPI server
  - Client: async endpoint client for either role
"""

__version__ = "1.0.0"
