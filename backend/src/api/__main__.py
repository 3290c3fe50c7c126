"""Entry point for running the API server."""

import uvicorn

from core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    # PORT is provided by PaaS platforms (Railway, Render, Heroku, etc.).
    # X-Forwarded-For is resolved by the app itself against FORWARDED_ALLOW_IPS.
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        proxy_headers=False,
        log_level=settings.log_level.lower(),
    )
