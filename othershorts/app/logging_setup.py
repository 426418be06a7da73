import logging
import sys

def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    # access log is one line per feed call, too noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # requests/urllib3 log every lookup connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
