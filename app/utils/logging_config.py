import logging
import logging.handlers
import time
from datetime import datetime
from pathlib import Path
from app.config import get_settings

# Component loggers that get their own rotating file next to app.log
COMPONENT_LOGS = {
    'app.services.submission_gate': "lifecycle.log",
    'app.services.notification_service': "notifications.log",
    'app.utils.scheduler': "scheduler.log",
}


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter, max_mb: int = 5, backups: int = 3):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging():
    """
    Configure logging for the logbook service.
    Writes a console stream, a rotating app.log, one file per lifecycle
    component and an errors-only file.
    """
    settings = get_settings()

    logs_dir = Path(settings.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    log_format = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Console handler (for Docker logs)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(logs_dir / "app.log", level, log_format, max_mb=10, backups=5))

    for logger_name, file_name in COMPONENT_LOGS.items():
        component_logger = logging.getLogger(logger_name)
        component_logger.handlers.clear()
        component_logger.addHandler(_rotating_handler(logs_dir / file_name, logging.DEBUG, log_format))
        component_logger.setLevel(logging.DEBUG)

    root_logger.addHandler(_rotating_handler(logs_dir / "errors.log", logging.ERROR, log_format, backups=5))

    # Suppress noisy third-party loggers
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Logging configuration completed")
    logger.info(f"Log files will be saved to: {logs_dir.absolute()}")

    return logs_dir


def get_log_files_info():
    """
    Get information about current log files for debugging.
    """
    logs_dir = Path(get_settings().log_dir)
    if not logs_dir.exists():
        return {"status": "No logs directory found"}

    log_files = {}
    for log_file in logs_dir.glob("*.log"):
        try:
            stat = log_file.stat()
            log_files[log_file.name] = {
                "size_mb": round(stat.st_size / (1024*1024), 2),
                "modified": datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S")
            }
        except OSError as e:
            log_files[log_file.name] = {"error": str(e)}

    return log_files


def cleanup_old_logs(days_to_keep=30):
    """
    Remove rotated log files older than the given number of days.
    Returns the names of the removed files.
    """
    logs_dir = Path(get_settings().log_dir)
    if not logs_dir.exists():
        return []

    cutoff_time = time.time() - (days_to_keep * 24 * 60 * 60)

    cleaned_files = []
    for log_file in logs_dir.glob("*.log.*"):
        try:
            if log_file.stat().st_mtime < cutoff_time:
                log_file.unlink()
                cleaned_files.append(log_file.name)
        except OSError as e:
            logging.getLogger(__name__).warning(f"Failed to clean up {log_file}: {e}")

    if cleaned_files:
        logging.getLogger(__name__).info(f"Cleaned up old log files: {cleaned_files}")
    return cleaned_files
