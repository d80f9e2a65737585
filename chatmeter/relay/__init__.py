"""Relay module - server side of the remote model endpoint."""

from .pricing import relay_usage, RELAY_RATES
from .service import RelayService

__all__ = ['relay_usage', 'RELAY_RATES', 'RelayService']
