"""Run the pattern demos: ``python -m learntrack.patterns``."""

import asyncio

from learntrack.config import get_settings
from learntrack.core.logging import configure_structlog
from learntrack.patterns.demo import run_all


if __name__ == "__main__":
    configure_structlog(get_settings())
    asyncio.run(run_all())
