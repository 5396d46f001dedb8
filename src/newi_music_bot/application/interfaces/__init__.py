"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters.
"""

from newi_music_bot.application.interfaces.audio_engine import AudioEngine, AudioNode
from newi_music_bot.application.interfaces.now_playing_ui import NowPlayingUI

__all__ = [
    "AudioEngine",
    "AudioNode",
    "NowPlayingUI",
]
