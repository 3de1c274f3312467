"""Module executed when running ``python -m plexport``."""

import uvicorn

from plexport.config import get_settings


def main() -> None:
    """Start the uvicorn server using the configured settings."""
    settings = get_settings()
    uvicorn.run(
        "plexport.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
