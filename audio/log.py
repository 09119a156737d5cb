import asyncio
import logging

from .base import TONE_ALARM, register_audio

L = logging.getLogger("stillcheck.audio")

TONE_SECONDS = 1.5
SPEECH_SECONDS_PER_CHAR = 0.08


@register_audio("log")
class LogAudio:
    """Headless stand-in: logs each cue and takes roughly as long as playback would."""

    def __init__(self, cfg_block=None, *, sleep=asyncio.sleep, simulate: bool = True):
        self._sleep = sleep
        self._simulate = simulate

    async def play_tone(self, tone_id: str = TONE_ALARM) -> None:
        L.info("tone %s", tone_id)
        if self._simulate:
            await self._sleep(TONE_SECONDS)

    async def speak(self, text: str) -> None:
        L.info("say %r", text)
        if self._simulate:
            await self._sleep(len(text) * SPEECH_SECONDS_PER_CHAR)


__all__ = ["LogAudio"]
