import logging, json, sys, time, os

LEVEL_ENV = "PINGPONG_LOG_LEVEL"


def resolve_level(level) -> int:
    """Map a level name ("debug", "WARNING") or number to a logging level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def get_logger(name="PingPong", level=None, to_file=None):
    """
    Structured JSON logger shared by the engine and transports.

    level falls back to PINGPONG_LOG_LEVEL; calling again with an explicit
    level (as ProtocolEngine does with its config) re-levels the logger.
    """
    logger = logging.getLogger(name)
    if level is None:
        level = os.getenv(LEVEL_ENV, "INFO")
    logger.setLevel(resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt=json.dumps({
                "ts": "%(asctime)s",
                "level": "%(levelname)s",
                "name": "%(name)s",
                "msg": "%(message)s"
            }),
            datefmt="%Y-%m-%dT%H:%M:%SZ",
        )
        formatter.converter = time.gmtime  # UTC timestamps
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
