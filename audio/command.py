"""Tone and speech through external commands (e.g. `aplay` and `espeak-ng`)."""

import asyncio
import logging
import os

from .base import TONE_ALARM, register_audio

L = logging.getLogger("stillcheck.audio.command")


async def _run(argv: list[str]) -> None:
    L.debug("exec %s", " ".join(argv))
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise RuntimeError(f"{argv[0]}: {e}") from e
    try:
        _, err = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise
    if proc.returncode != 0:
        msg = (err or b"").decode("utf-8", "replace").strip()
        raise RuntimeError(f"{argv[0]} exited {proc.returncode}: {msg}")


@register_audio("command")
class CommandAudio:
    def __init__(self, cfg_block):
        self.tone_command = list(cfg_block.tone_command)
        self.speech_command = list(cfg_block.speech_command)
        self.tone_file = str(cfg_block.tone_file or "")
        self.language = str(cfg_block.language or "")
        self.speech_wpm = int(cfg_block.speech_wpm)
        if self.tone_file and not os.path.isfile(self.tone_file):
            L.warning("tone_file not found: %s", self.tone_file)

    async def play_tone(self, tone_id: str = TONE_ALARM) -> None:
        if not self.tone_file:
            L.info("tone %s (no tone_file configured)", tone_id)
            return
        await _run(self.tone_command + [self.tone_file])

    async def speak(self, text: str) -> None:
        argv = list(self.speech_command)
        if self.language:
            argv += ["-v", self.language]
        if self.speech_wpm > 0:
            argv += ["-s", str(self.speech_wpm)]
        await _run(argv + [text])


__all__ = ["CommandAudio"]
