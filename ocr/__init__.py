from .base import (
    RecognizedText,
    Recognizer,
    TextBlock,
    TextLine,
    create_recognizer,
    register_recognizer,
)

__all__ = [
    "RecognizedText",
    "Recognizer",
    "TextBlock",
    "TextLine",
    "create_recognizer",
    "register_recognizer",
]
