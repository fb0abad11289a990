"""
Logging Utility for the Portal Backend

Readable, structured console logging:
- Color-coded log levels
- Per-area icons (grid, tutees, earnings, spelling, push)
- Section banners for startup/shutdown
- Request/response lines with timing
"""

import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

RESET = '\033[0m'
BOLD = '\033[1m'
BANNER = '\033[94m'
DIM = '\033[90m'

# levelname -> (ANSI color, icon)
LEVEL_STYLES = {
    'DEBUG': ('\033[36m', '🔍'),
    'INFO': ('\033[32m', 'ℹ️'),
    'WARNING': ('\033[33m', '⚠️'),
    'ERROR': ('\033[31m', '❌'),
    'CRITICAL': ('\033[35m', '🚨'),
}


class ColoredFormatter(logging.Formatter):
    """Formatter with level colors and an icon per application area."""

    # Keyed by the last component of the logger name
    AREA_ICONS = {
        'grid_data': '🗺️',
        'grid_progress': '🗺️',
        'grid_search': '🔎',
        'grid': '🗺️',
        'tutees': '👩‍🎓',
        'pin_guard': '🔒',
        'earnings': '💰',
        'spelling': '🐝',
        'spelling_quiz': '🏆',
        'worksheets': '📝',
        'chat_completion': '🤖',
        'chat': '🤖',
        'push_notifications': '📣',
        'notifications': '📣',
        'reminder_scheduler': '⏰',
        'auth': '🔑',
        'main': '🚀',
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        color, level_icon = LEVEL_STYLES.get(record.levelname, (RESET, '•'))
        if record.levelno < logging.WARNING:
            icon = self.AREA_ICONS.get(record.name.rsplit('.', 1)[-1], level_icon)
        else:
            icon = level_icon

        clock = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]
        if not self.use_colors:
            color = reset = bold = dim = ''
        else:
            reset, bold, dim = RESET, BOLD, DIM

        line = (
            f"{dim}[{clock}]{reset} {icon} {color}{record.levelname:8s}{reset} "
            f"{bold}{record.name}{reset} | {record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class StructuredLogger:
    """Logger wrapper that renders optional key/value data under each message."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(name)

    @staticmethod
    def _format_data(data: Dict[str, Any]) -> str:
        lines = []
        for key, value in data.items():
            if isinstance(value, list) and len(value) > 5:
                value = f"{value[:3]} ... ({len(value)} items total)"
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)

    def _with_data(self, message: str, data: Optional[Dict[str, Any]]) -> str:
        return f"{message}\n{self._format_data(data)}" if data else message

    def section(self, title: str, data: Optional[Dict[str, Any]] = None):
        """Print a banner (startup, shutdown, batch jobs)."""
        separator = "=" * 80
        color = sys.stdout.isatty()
        print(f"\n{BANNER if color else ''}{separator}")
        print(f"📋 {title.upper()}")
        if data:
            print(self._format_data(data))
        print(f"{separator}{RESET if color else ''}\n")

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.debug(self._with_data(message, data))

    def info(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(message, data))

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.warning(self._with_data(message, data))

    def error(self, message: str, error: Optional[Exception] = None, data: Optional[Dict[str, Any]] = None):
        """Log an error with the exception type and message appended."""
        error_info = f" Error: {type(error).__name__}: {error}" if error else ""
        self.logger.error(self._with_data(f"{message}{error_info}", data), exc_info=error)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None):
        self.logger.info(self._with_data(f"✅ {message}", data))

    def request(self, method: str, path: str, user_id: Optional[str] = None):
        who = user_id[:20] + "..." if user_id and len(user_id) > 20 else user_id
        self.logger.info(f"📥 REQUEST: {method} {path}" + (f" (user {who})" if who else ""))

    def response(self, status: int, path: str, duration: Optional[float] = None):
        timing = f" in {duration * 1000:.2f}ms" if duration is not None else ""
        self.logger.info(f"📤 RESPONSE: {status} {path}{timing}")


def setup_logging(level: int = logging.INFO, use_colors: bool = True):
    """Install the colored console handler on the root logger."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_colors))

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress noisy loggers
    for noisy in ('asyncio', 'httpx', 'httpcore', 'urllib3', 'hpack', 'google.auth'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, logging.getLogger(name))
