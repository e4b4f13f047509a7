"""
Logging configuration for AnkiPix.

Provides a centralized logging setup with human-readable output and structured context fields.
"""
import logging
import sys

_STANDARD_ATTRS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'asctime', 'getMessage', 'taskName',
})


class ContextFormatter(logging.Formatter):
    """Formatter that appends structured context fields to log messages.

    Supports extra fields passed via logger.info("msg", extra={...})
    Format: timestamp [LEVEL] logger_name: message | key1=value1 key2=value2
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m',
        'GRAY': '\033[90m',
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool = True) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        base_msg = super().format(record)

        levelname = record.levelname
        if self.use_colors and levelname in self.COLORS:
            colored_level = f"{self.COLORS[levelname]}[{levelname}]{self.COLORS['RESET']}"
            base_msg = base_msg.replace(f"[{levelname}]", colored_level)

        extra_fields = [
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and value is not None
        ]

        if not extra_fields:
            return base_msg
        if self.use_colors:
            return f"{base_msg}{self.COLORS['GRAY']} | {' '.join(extra_fields)}{self.COLORS['RESET']}"
        return f"{base_msg} | {' '.join(extra_fields)}"


def setup_logging(level: str = "INFO", use_colors: bool | None = None) -> None:
    """Configure logging for the whole application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               DEBUG shows every HTTP request made to the image providers and AnkiConnect.
        use_colors: Force ANSI colours on or off. Defaults to colours when stderr is a TTY.

    Example:
        >>> from ankipix.common.logging_config import setup_logging
        >>> setup_logging("DEBUG")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if use_colors is None:
        use_colors = sys.stderr.isatty()

    formatter = ContextFormatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        use_colors=use_colors,
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger('ankipix')
    root_logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.propagate = False

