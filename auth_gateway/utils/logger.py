"""
Logging utilities for the Auth Gateway

Provides centralized logging configuration: stdlib handlers via dictConfig
with structlog processors on top.
"""

import os
import sys
import copy
import logging
import logging.config
from typing import Optional, Dict, Any, Iterable

import structlog
import yaml

REDACTED = "[REDACTED]"

# Context keys that must never reach the log sink in clear text
SENSITIVE_KEYS = frozenset({
    "password",
    "new_password",
    "current_password",
    "token",
    "id_token",
    "idtoken",
    "access_token",
    "accesstoken",
    "refresh_token",
    "refreshtoken",
    "oob_code",
    "oobcode",
    "private_key",
    "privatekey",
    "api_key",
    "apikey",
    "authorization",
})

# Default logging configuration
DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'plain': {
            'format': '%(message)s'
        },
        'default': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        }
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'level': 'INFO',
            'formatter': 'plain',
            'stream': 'ext://sys.stdout'
        }
    },
    'loggers': {
        'auth_gateway': {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False
        },
        'uvicorn': {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False
        }
    },
    'root': {
        'level': 'WARNING',
        'handlers': ['console']
    }
}


def is_sensitive_key(key: Any) -> bool:
    """Check whether a context key names a secret"""
    return isinstance(key, str) and key.lower() in SENSITIVE_KEYS


def redact(value: Any) -> Any:
    """
    Return a copy of ``value`` with every sensitive key masked

    Walks nested dicts, lists and tuples.
    """
    if isinstance(value, dict):
        return {
            k: (REDACTED if is_sensitive_key(k) else redact(v))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact(v) for v in value]
    if isinstance(value, tuple):
        return tuple(redact(v) for v in value)
    return value


def redact_sensitive_fields(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor masking secrets in every event"""
    return redact(event_dict)


def _load_config_file(config_path: str) -> Optional[Dict[str, Any]]:
    """Load a YAML dictConfig file, returning None when unusable"""
    try:
        with open(config_path, 'r') as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        print(f"Failed to load logging config from {config_path}: {e}", file=sys.stderr)
        return None


def _build_processors(log_format: str) -> Iterable:
    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == 'console'
        else structlog.processors.JSONRenderer()
    )
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    log_format: str = 'json'
) -> None:
    """
    Setup logging configuration

    Args:
        config_path: Path to a YAML logging configuration file
        log_level: Override log level
        log_format: Renderer for structured events ('json' or 'console')
    """
    config = None

    if config_path and os.path.exists(config_path):
        config = _load_config_file(config_path)

    if not config:
        config = copy.deepcopy(DEFAULT_LOGGING_CONFIG)

    if log_level:
        log_level = log_level.upper()
        for logger_config in config.get('loggers', {}).values():
            logger_config['level'] = log_level
        for handler_config in config.get('handlers', {}).values():
            handler_config['level'] = log_level

    try:
        logging.config.dictConfig(config)
    except (ValueError, TypeError, AttributeError, ImportError) as e:
        print(f"Failed to configure logging: {e}", file=sys.stderr)
        logging.basicConfig(
            level=getattr(logging, log_level or 'INFO', logging.INFO),
            format='%(message)s'
        )

    structlog.configure(
        processors=_build_processors(log_format),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def flush_logging() -> None:
    """Flush every handler attached to the root and named loggers"""
    loggers = [logging.getLogger()] + [
        logger for logger in logging.Logger.manager.loggerDict.values()
        if isinstance(logger, logging.Logger)
    ]
    for logger in loggers:
        for handler in logger.handlers:
            handler.flush()

