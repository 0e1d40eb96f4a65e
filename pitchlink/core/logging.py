import sys
from loguru import logger
from pitchlink.core.config import APP_ENV, LOG_FILE, LOG_LEVEL

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"

def setup_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE) -> None:
    logger.remove()

    logger.add(sys.stdout, level=level, format=LOG_FORMAT)

    # push delivery logs from worker threads; enqueue keeps file writes ordered
    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="14 days",
            enqueue=True,
            level=level,
            format=LOG_FORMAT,
        )

    logger.info(f"Logging initialized | env={APP_ENV} level={level} file={log_file or '-'}")
