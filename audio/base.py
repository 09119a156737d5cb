from __future__ import annotations

from typing import Any, Callable, Protocol

from core.registry import NamedRegistry

# Cue ids understood by every audio implementation.
TONE_ALARM = "alarm"


class Audio(Protocol):
    """Tone and speech output; both calls return once playback has finished."""

    async def play_tone(self, tone_id: str = TONE_ALARM) -> None: ...

    async def speak(self, text: str) -> None: ...


audio_impls: NamedRegistry[Callable[[Any], Audio]] = NamedRegistry(
    __package__ or "audio", "audio type"
)


def register_audio(name: str):
    return audio_impls.register(name)


def create_audio(name: str, cfg_block) -> Audio:
    factory = audio_impls.resolve(name)
    return factory(cfg_block)


__all__ = ["Audio", "TONE_ALARM", "audio_impls", "create_audio", "register_audio"]
