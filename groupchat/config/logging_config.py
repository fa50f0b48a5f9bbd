# groupchat/config/logging_config.py
# =============================================================================
# File: groupchat/config/logging_config.py
# Description: Logging configuration using the Rich framework
# =============================================================================

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule
from rich.theme import Theme


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key, '').lower()
    return value in ('true', '1', 'yes', 'on') if value else default


def get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


# Muted theme for console output
GROUPCHAT_THEME = Theme({
    "debug": "magenta dim",
    "info": "green",
    "warning": "dark_goldenrod",
    "error": "red",
    "critical": "bold red",
    "timestamp": "grey70",
    "logger_name": "grey35",
    "message": "grey85",
    "header": "bold cyan",
})

PLAIN_LOG_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)-40s] %(message)s"
PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class GroupChatRichHandler(RichHandler):
    """RichHandler with quieter runtime defaults"""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('show_time', True)
        kwargs.setdefault('show_level', True)
        kwargs.setdefault('show_path', False)
        kwargs.setdefault('enable_link_path', False)
        kwargs.setdefault('markup', False)
        kwargs.setdefault('rich_tracebacks', True)
        kwargs.setdefault('tracebacks_show_locals', False)
        super().__init__(*args, **kwargs)


class ProductionFormatter(logging.Formatter):
    """JSON formatter for production environments"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if get_env_bool('LOG_JSON_INCLUDE_EXTRAS', True):
            for extra_field in ('user_id', 'group_id', 'request_id', 'correlation_token'):
                if hasattr(record, extra_field):
                    log_obj[extra_field] = getattr(record, extra_field)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def get_logger_level_from_env(logger_name: str, default_level: int) -> int:
    """Get logger level from environment variable."""
    # e.g., "groupchat.client.sync" -> "LOGLEVEL_GROUPCHAT_CLIENT_SYNC"
    env_name = f"LOGLEVEL_{logger_name.replace('.', '_').upper()}"

    level_str = os.getenv(env_name, '').upper()
    if level_str:
        level_map = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'WARN': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL,
        }
        return level_map.get(level_str, default_level)

    return default_level


def setup_logging(
        service_name: str = "groupchat",
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
        enable_json: Optional[bool] = None,
) -> None:
    """
    Configure logging with the Rich framework.

    Args:
        service_name: Name of the service (e.g., "api", "client")
        log_level: Override log level
        log_file: Optional log file path
        enable_json: Enable JSON formatting for production
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE")

    if enable_json is None:
        enable_json = get_env_bool('LOG_JSON_FORMAT', False)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    use_rich = not enable_json and (sys.stdout.isatty() or get_env_bool("FORCE_COLOR", False))

    if use_rich:
        console_width = get_env_int('LOG_CONSOLE_WIDTH', 0) or None
        console = Console(
            theme=GROUPCHAT_THEME,
            force_terminal=get_env_bool("FORCE_COLOR", False),
            width=console_width,
        )
        root_logger.addHandler(GroupChatRichHandler(console=console))

    elif enable_json:
        json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(ProductionFormatter())
        root_logger.addHandler(json_handler)

    else:
        plain_handler = logging.StreamHandler(sys.stdout)
        plain_handler.setFormatter(logging.Formatter(PLAIN_LOG_FORMAT, datefmt=PLAIN_DATE_FORMAT))
        root_logger.addHandler(plain_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=get_env_int('LOG_MAX_SIZE_MB', 100) * 1024 * 1024,
            backupCount=get_env_int('LOG_BACKUP_COUNT', 5),
            encoding=os.getenv('LOG_FILE_ENCODING', 'utf-8'),
        )
        # Always use plain formatter for files
        file_handler.setFormatter(logging.Formatter(PLAIN_LOG_FORMAT, datefmt=PLAIN_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    # Third-party noise
    default_noise_config = {
        "asyncio": logging.WARNING,
        "httpx": logging.WARNING,
        "httpcore": logging.WARNING,
        "websockets": logging.WARNING,
        "redis": logging.WARNING,
        "uvicorn.access": logging.WARNING,
        "groupchat.cqrs.command": logging.INFO,
        "groupchat.wse.pubsub": logging.INFO,
    }

    for logger_name, default_level in default_noise_config.items():
        logging.getLogger(logger_name).setLevel(get_logger_level_from_env(logger_name, default_level))

    # Explicit LOGLEVEL_ overrides win over everything above
    for key, value in os.environ.items():
        if key.startswith('LOGLEVEL_'):
            logger_name_from_env = key[9:].lower().replace('_', '.')
            level_value = logging.getLevelName(value.upper())
            if isinstance(level_value, int):
                logging.getLogger(logger_name_from_env).setLevel(level_value)

    logging.getLogger(f"groupchat.{service_name}.startup").info(
        f"Logging configured for {service_name} service"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_section(logger: logging.Logger, title: str) -> None:
    """Log a section separator"""
    if not sys.stdout.isatty():
        logger.info(f"{'=' * 60}")
        logger.info(f"  {title.upper()}")
        logger.info(f"{'=' * 60}")
        return

    console = Console(theme=GROUPCHAT_THEME)
    console.print(Rule(f"[header]{title}[/header]", style="grey35"))
