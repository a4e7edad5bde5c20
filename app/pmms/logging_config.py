import logging
import sys


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach one stdout handler to the `app.pmms` logger tree. Safe to call twice."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger = logging.getLogger("app.pmms")
    logger.setLevel(level)
    if logger.handlers:
        return logger  # already configured
    handler = logging.StreamHandler(sys.stdout)
    fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
    # SQL echo only when debugging
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logger
