"""Run the gateway under uvicorn: python -m gateway"""

import uvicorn

from gateway.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "gateway.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,  # configure_logging owns the root logger
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
