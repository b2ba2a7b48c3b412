"""Run the relay server: ``python -m prompt_relay``."""

import uvicorn

from prompt_relay.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "prompt_relay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
