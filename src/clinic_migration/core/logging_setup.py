import logging
import logging.handlers
from pathlib import Path
from clinic_migration.core.config import LOGS_DIR

DEFAULT_FMT = "%(asctime)s - %(levelname)-5s - %(name)s - %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"

# driver chatter drowns the per-phase counts
NOISY_LOGGERS = ("pymongo", "sqlalchemy.engine")

def setup_logging(level: str = "INFO", file_name: str = "migration.log", logs_dir=None) -> Path:
    """Console + rotating file logging for the operator scripts; returns the log file path."""
    log_file = Path(logs_dir or LOGS_DIR) / file_name
    if getattr(setup_logging, "_configured", None):
        return setup_logging._configured  # already set up for this process
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(str(level).upper())
    formatter = logging.Formatter(DEFAULT_FMT, datefmt=DATE_FMT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    fh = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
    )
    fh.setFormatter(formatter)
    root.addHandler(fh)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    setup_logging._configured = log_file
    return log_file
