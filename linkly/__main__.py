"""Run the API server: ``python -m linkly``."""

import uvicorn

from linkly.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "linkly.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,  # keep the structlog handlers installed by the app
    )


if __name__ == "__main__":
    main()
