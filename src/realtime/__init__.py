"""
ResQ Real-time Module
==============================

WebSocket server pushing service-request changes to clients.

Usage in FastAPI app startup::

    from src.realtime.socketServer import socket_app
    from src.realtime import handlers  # registers event listeners
    app.mount("/ws", socket_app)

Handlers are not imported here: they depend on the database session
factory and the request service, which themselves publish through
``socketServer``.
"""
