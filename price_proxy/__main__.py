"""Run the Price Proxy Service with uvicorn."""

import uvicorn

from price_proxy.core.config import settings


def main() -> None:
    uvicorn.run(
        "price_proxy.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
