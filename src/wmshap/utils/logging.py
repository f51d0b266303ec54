import logging
from typing import Optional


def setup_logging(level: int = logging.INFO, logfile: Optional[str] = None) -> None:
    """Configure basic logging format, optionally mirrored to a file."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if logfile is not None:
        handlers.append(logging.FileHandler(logfile, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    # matplotlib's font manager is chatty at INFO
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
