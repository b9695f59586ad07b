import logging
import sys
import os
from datetime import datetime

import services.util as u

# ANSI colour codes
COLORS = {
    'DBG': '\033[36m',   # cyan
    'INF': '\033[32m',   # green
    'WRN': '\033[33m',   # yellow
    'ERR': '\033[31m',   # red
    'CRT': '\033[91m\033[1m',  # bright red, bold
    'RST': '\033[0m'
}

IS_TTY = sys.stdout.isatty()

LOG_DIR = u.get_log_path()
os.makedirs(LOG_DIR, exist_ok=True)

# One file per run, e.g. 20250915-150316061.log (millisecond precision)
_log_filename = datetime.now().strftime("%Y%m%d-%H%M%S%f")[:-3] + ".log"
LOG_FILE_PATH = os.path.join(LOG_DIR, _log_filename)


# Secrets to redact from all log output (the bot token).
# Populated by register_sensitive() after the config is loaded.
_sensitive: set[str] = set()


def register_sensitive(values) -> None:
    """Register secret strings that must never appear in log output."""
    _sensitive.clear()
    # Skip values shorter than 8 chars to avoid masking common substrings
    _sensitive.update(v for v in values if v and len(v) >= 8)


class MaskingFilter(logging.Filter):
    """Redacts sensitive values from every log record before emission."""

    def filter(self, record: logging.LogRecord) -> bool:
        if _sensitive:
            msg = record.getMessage()
            for secret in _sensitive:
                if secret in msg:
                    msg = msg.replace(secret, "***")
            record.msg = msg
            record.args = ()
        return True


class CustomFormatter(logging.Formatter):
    replaces = {
        'DEBUG': '[DBG]',
        'INFO': '[INF]',
        'WARNING': '[WRN]',
        'ERROR': '[ERR]',
        'CRITICAL': '[CRT]'
    }

    def format(self, record):
        timestamp = datetime.now().strftime('[%Y-%m-%d %H:%M:%S]')
        level = self.replaces.get(record.levelname, f'[{record.levelname}]')
        color_key = level[1:4]

        if IS_TTY and color_key in COLORS:
            level = COLORS[color_key] + level + COLORS['RST']

        try:
            file = os.path.relpath(record.pathname)
        except ValueError:
            file = record.pathname

        return f"{timestamp} {level} | {file}:{record.lineno} | {record.getMessage()}"


logger = logging.getLogger('app')
logger.setLevel(logging.DEBUG)

# Drop handlers left over from a previous import to avoid duplicate lines
if logger.handlers:
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
logger.propagate = False

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(CustomFormatter())
console_handler.addFilter(MaskingFilter())
console_handler.setLevel(logging.INFO)
logger.addHandler(console_handler)

# The file always gets everything from DEBUG up
file_handler = logging.FileHandler(LOG_FILE_PATH, encoding='utf-8')
file_formatter = logging.Formatter(
    '[%(asctime)s] [%(levelname)s] | %(filename)s:%(lineno)d | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
file_handler.setFormatter(file_formatter)
file_handler.addFilter(MaskingFilter())
file_handler.setLevel(logging.DEBUG)
logger.addHandler(file_handler)

# discord.py logs through its own "discord" logger; send it to the same place
discord_logger = logging.getLogger('discord')
discord_logger.setLevel(logging.INFO)
discord_logger.propagate = False
discord_logger.handlers = [console_handler, file_handler]


def set_console_level(level: str) -> None:
    """Set the console threshold, e.g. ``"DEBUG"``; the log file is unaffected."""
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name=None):
    """Return the configured logger (all modules share one instance)."""
    return logger
