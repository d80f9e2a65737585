"""Utilities."""

from .auth import create_access_token, decode_access_token, get_current_principal

__all__ = ['create_access_token', 'decode_access_token', 'get_current_principal']
