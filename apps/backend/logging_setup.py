import logging
import logging.handlers
import os
from pathlib import Path

DEFAULT_LOG_DIR = Path(__file__).resolve().parent / "logs"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(*, environment: str) -> None:
    """
    Configures root logging once per process.

    Development logs DEBUG to the console. Production logs INFO to the
    console and to a rotating `app.log` under LOG_DIR (default: ./logs
    next to this file). LOG_LEVEL overrides the level in both.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    production = (environment or "development").strip().lower() == "production"
    default_level = "INFO" if production else "DEBUG"
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", default_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers = [logging.StreamHandler()]
    if production:
        log_dir = Path(os.environ.get("LOG_DIR", DEFAULT_LOG_DIR))
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_dir / "app.log", maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        ))

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)

    logging.getLogger("uvicorn.access").setLevel(level)
    # SQL echo stays off unless asked for explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
