import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'


def setup_logging(level=logging.INFO):
    """
    Sets up centralized logging for the benchmark tools.

    Configures the root logger with a StreamHandler on stderr. Handlers are
    only added on the first call, so calling it again just changes the level.

    Args:
        level: Minimum level to emit, as a logging constant or a name like "DEBUG".
    """
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)

    # clickhouse-connect and SQLAlchemy are chatty at DEBUG
    logging.getLogger('clickhouse_connect').setLevel(max(level, logging.INFO))
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    root_logger.debug("Centralized logging configured.")
