import asyncio
import uvicorn

from shared.core.config import settings


async def start_servers():
    config = uvicorn.Config(
        "building_service.app.main:app",
        host="0.0.0.0",
        port=8002,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )
    server = uvicorn.Server(config)

    await server.serve()

if __name__ == "__main__":
    try:
        asyncio.run(start_servers())
    except KeyboardInterrupt:
        print("\nShutting down server...")
