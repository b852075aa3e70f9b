"""Run the API with uvicorn: ``python -m learntrack``."""

import uvicorn

from learntrack.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "learntrack.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.server_reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
