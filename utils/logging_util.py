import logging
import sys

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, level=logging.INFO) -> logging.Logger:
    """
    Sets up a logger with consistent formatting.

    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger

def set_log_level(level_name: str) -> None:
    """Apply a configured level name (e.g. 'DEBUG') to every logger set up so far."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    for name in list(logging.root.manager.loggerDict):
        logger = logging.getLogger(name)
        if logger.handlers and name.split(".")[0] in {"utils", "db", "routes", "main"}:
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)

def log_session_commit(logger: logging.Logger, session_id: str, status: str,
                       word_count: int, xp_delta: int):
    """
    Logs a committed study session.

    Args:
        logger: Logger instance to use
        session_id: Identifier of the committed session
        status: 'completed' or 'quit'
        word_count: Number of words in the session config
        xp_delta: XP applied to the global counter
    """
    sign = "+" if xp_delta >= 0 else ""
    logger.info(f"Session {session_id} {status} - Words: {word_count}, XP: {sign}{xp_delta}")
