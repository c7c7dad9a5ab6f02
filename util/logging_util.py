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

        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger


def log_level_for(verbose: bool) -> int:
    """Map the verbose setting onto a logging level."""
    return logging.DEBUG if verbose else logging.INFO


def log_score_breakdown(logger: logging.Logger, title: str, relevance: float,
                        age_days: float, boost: float, final_score: float):
    """
    Logs how a search hit's final score was put together.

    Args:
        logger: Logger instance to use
        title: Title of the article
        relevance: Raw relevance score from the index
        age_days: Age of the article in (clamped) days
        boost: Recency boost added to the relevance
        final_score: relevance + boost
    """
    logger.info(
        f"index score={relevance:.3f}, age={age_days:.6f}d, "
        f"boost={boost:.5f}, weighted={final_score:.3f} - {title[:80]}"
    )


def apply_log_level(prefix: str, level: int):
    """
    Sets the level of every logger (and its handlers) created under ``prefix``.

    Args:
        prefix: Logger name prefix, e.g. a top-level package name
        level: Logging level to apply
    """
    for name, logger in logging.root.manager.loggerDict.items():
        if not isinstance(logger, logging.Logger):
            continue
        if name != prefix and not name.startswith(prefix + "."):
            continue
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
