"""Run the CineLog API with uvicorn: ``python -m cinelog``."""

from __future__ import annotations

import uvicorn

from cinelog.config import settings


def main() -> None:
    # auto-reload only makes sense against a source checkout
    uvicorn.run(
        "cinelog.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
        proxy_headers=settings.environment == "production",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
