"""Entry point for running the content API server."""

import uvicorn

from core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
