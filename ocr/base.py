from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from core.contracts import RecognitionError
from core.registry import NamedRegistry


@dataclass(frozen=True)
class TextLine:
    text: str


@dataclass(frozen=True)
class TextBlock:
    text: str
    lines: tuple[TextLine, ...] = ()


@dataclass(frozen=True)
class RecognizedText:
    whole_text: str = ""
    blocks: tuple[TextBlock, ...] = field(default_factory=tuple)

    @classmethod
    def from_lines(cls, block_lines: list[list[str]]) -> "RecognizedText":
        """Build from per-block line texts; block and whole texts are newline joins."""
        blocks = []
        for lines in block_lines:
            clean = [ln for ln in lines if ln.strip()]
            if not clean:
                continue
            blocks.append(
                TextBlock(text="\n".join(clean), lines=tuple(TextLine(t) for t in clean))
            )
        return cls(whole_text="\n".join(b.text for b in blocks), blocks=tuple(blocks))


class Recognizer(Protocol):
    def recognize(self, image_bytes: bytes) -> RecognizedText:
        """Return recognized text; raise RecognitionError on malformed input."""
        ...


recognizers: NamedRegistry[Callable[..., Recognizer]] = NamedRegistry(
    __package__ or "ocr", "recognizer impl"
)


def register_recognizer(name: str):
    return recognizers.register(name)


def create_recognizer(name: str, params: dict[str, Any] | None = None) -> Recognizer:
    factory = recognizers.resolve(name)
    return factory(params or {})


__all__ = [
    "RecognitionError",
    "RecognizedText",
    "Recognizer",
    "TextBlock",
    "TextLine",
    "create_recognizer",
    "register_recognizer",
]
