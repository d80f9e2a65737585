"""Chat core - sessions, usage estimates, stream decoding and the exchange pipeline."""

from .usage import Usage, estimate, rate
from .streaming import (
    StartEvent, ChunkEvent, DoneEvent, ErrorEvent, StreamEvent,
    StreamDecoder, decode_stream, encode_event,
)
from .notices import Notice, Notifier
from .remote import RemoteModelClient, RemoteModelError, ModelReply
from .session_store import SessionStore
from .pipeline import ExchangeMode, ExchangeState, ExchangeResult, MessageExchangePipeline
from .client import ChatClient, ChatClientRegistry

__all__ = [
    'Usage', 'estimate', 'rate',
    'StartEvent', 'ChunkEvent', 'DoneEvent', 'ErrorEvent', 'StreamEvent',
    'StreamDecoder', 'decode_stream', 'encode_event',
    'Notice', 'Notifier',
    'RemoteModelClient', 'RemoteModelError', 'ModelReply',
    'SessionStore',
    'ExchangeMode', 'ExchangeState', 'ExchangeResult', 'MessageExchangePipeline',
    'ChatClient', 'ChatClientRegistry',
]
