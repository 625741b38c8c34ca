"""
Structured logging configuration using structlog.
"""
import structlog
import logging
import sys
from typing import Any, Dict


def _app_context(environment: str):
    def add_app_context(logger: Any, method_name: str, event_dict: Dict) -> Dict:
        """Add application context to log entries."""
        event_dict['app'] = 'myfatoorah-relay'
        event_dict['environment'] = environment
        return event_dict
    return add_app_context


def configure_logging(level: str = "INFO", environment: str = "production"):
    """Configure stdlib logging and structlog with processors."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _app_context(environment),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__):
    """Get a structured logger instance."""
    return structlog.get_logger(name)
