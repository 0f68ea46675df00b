"""
Web layer: FastAPI routes and the Socket.IO realtime gateway.

Use web.main.create_app() for the HTTP app alone, or
web.main.create_asgi_app() for the combined HTTP + Socket.IO server.
"""
