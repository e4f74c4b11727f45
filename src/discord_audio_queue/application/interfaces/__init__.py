"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters.
"""

from discord_audio_queue.application.interfaces.audio_resolver import AudioResolver, StreamHandle
from discord_audio_queue.application.interfaces.voice_transport import (
    TransportEvent,
    TransportHandle,
    TransportSignal,
    VoiceTransport,
)

__all__ = [
    "AudioResolver",
    "StreamHandle",
    "TransportEvent",
    "TransportHandle",
    "TransportSignal",
    "VoiceTransport",
]
