"""Core module - logging setup shared by the app."""

from .logging_config import setup_logging, ContextLogger, filter_sensitive_data

__all__ = ['setup_logging', 'ContextLogger', 'filter_sensitive_data']
