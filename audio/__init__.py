from .base import TONE_ALARM, Audio, create_audio, register_audio

__all__ = ["Audio", "TONE_ALARM", "create_audio", "register_audio"]
