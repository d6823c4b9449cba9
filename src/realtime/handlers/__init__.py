"""
ResQ Real-time Handlers
===============================

WebSocket event handlers for the ``/requests`` namespace (requestHandler).

Importing this module registers all event handlers with the shared
Socket.IO server instance.
"""

from __future__ import annotations

from . import requestHandler

__all__ = [
    "requestHandler",
]
