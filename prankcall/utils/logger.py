import inspect
import logging
import os

from pythonjsonlogger import jsonlogger

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _caller_location() -> str:
    """Return file:line of the frame that called the logger method."""
    frame = inspect.currentframe()
    # Skip this helper and the Logger method itself
    caller = frame.f_back.f_back if frame and frame.f_back else None
    if caller is None:
        return "unknown:0"
    return f"{caller.f_code.co_filename}:{caller.f_lineno}"


class Logger(logging.LoggerAdapter):
    """JSON logger where keyword arguments become structured fields."""

    _instance = None
    _initialized = False

    def __new__(cls) -> "Logger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not Logger._initialized:
            log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
            log_level = LOG_LEVELS.get(log_level_str, logging.INFO)

            formatter = jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(message)s",
                rename_fields={"asctime": "@timestamp", "levelname": "log_level"},
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)

            logger = logging.getLogger("prankcall")
            logger.setLevel(log_level)
            logger.addHandler(handler)
            logger.propagate = False

            super().__init__(logger)
            Logger._initialized = True

    def error(self, msg: str, *args: tuple, **kwargs: dict) -> None:
        """Log an error with the caller's file and line."""
        kwargs["file"] = _caller_location()
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(
        self, msg: str, *args: tuple, exc_info: bool = True, **kwargs: dict
    ) -> None:
        """Log an error with traceback and the caller's file and line."""
        kwargs["file"] = _caller_location()
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        # Everything that is not a logging keyword ends up as a JSON field
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", None)
        stacklevel = kwargs.pop("stacklevel", None)

        result_kwargs = {}
        if kwargs:
            result_kwargs["extra"] = kwargs
        if exc_info is not None:
            result_kwargs["exc_info"] = exc_info
        if stack_info is not None:
            result_kwargs["stack_info"] = stack_info
        if stacklevel is not None:
            result_kwargs["stacklevel"] = stacklevel

        return msg, result_kwargs


logger = Logger()
logger.debug(
    f"Logging level set to {logging.getLevelName(logger.logger.getEffectiveLevel())}"
)
