"""Web server entry point for the EventThreads API + Socket.IO gateway"""

import uvicorn

# Load environment variables from .env file BEFORE importing anything else
from dotenv import load_dotenv
load_dotenv()

from eventthreads.utils.config import load_settings


def main() -> None:
    settings = load_settings()
    prefix = settings.server.api_prefix.rstrip("/")
    print(f"Server running on port {settings.server.port}")
    print(f"API: http://localhost:{settings.server.port}{prefix}")
    print(f"Health: http://localhost:{settings.server.port}{prefix}/health")
    uvicorn.run(
        "web.main:create_asgi_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
