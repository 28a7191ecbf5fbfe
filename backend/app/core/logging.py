from __future__ import annotations

import logging


def setup_logging(*, environment: str) -> None:
    """Configure application logging.

    - Dev: console logs, DEBUG level.
    - Anything else: console logs, INFO level.

    Safe to call multiple times (won't double-add handlers).
    """

    root = logging.getLogger()
    if root.handlers:
        return

    env = (environment or "development").lower().strip()
    level = logging.DEBUG if env == "development" else logging.INFO

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=[console])

    # SQL echo is only useful when debugging the store itself.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
