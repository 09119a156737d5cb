import unittest

from core.contracts import RecognitionError
from ocr.base import RecognizedText, TextBlock, TextLine
from plate.extractor import PlateExtractor, find_plate, iter_candidate_texts

RAW = b"raw-image"
ENHANCED = b"enhanced-image"


class _ScriptedRecognizer:
    """Returns (or raises) one scripted result per call and records the input."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: list[bytes] = []

    def recognize(self, image_bytes: bytes) -> RecognizedText:
        self.calls.append(image_bytes)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _text(*blocks: list[str]) -> RecognizedText:
    return RecognizedText.from_lines(list(blocks))


class _Enhancer:
    def __init__(self, result=ENHANCED):
        self.result = result
        self.calls = 0

    def __call__(self, data, params):
        self.calls += 1
        return self.result


class TestCandidateOrder(unittest.TestCase):
    def test_blocks_then_lines_then_whole_text(self):
        recognized = RecognizedText(
            whole_text="W",
            blocks=(
                TextBlock("B1", (TextLine("B1L1"), TextLine("B1L2"))),
                TextBlock("B2", (TextLine("B2L1"),)),
            ),
        )
        self.assertEqual(
            list(iter_candidate_texts(recognized)),
            ["B1", "B1L1", "B1L2", "B2", "B2L1", "W"],
        )

    def test_first_block_match_wins(self):
        recognized = _text(["INDIA", "KA 01 C 123"], ["MH 12 AB 1234"])
        self.assertEqual(find_plate(recognized), "KA01C123")

    def test_whole_text_used_last(self):
        recognized = RecognizedText(
            whole_text="MH12 AB1234",
            blocks=(TextBlock("MH12", (TextLine("MH12"),)), TextBlock("AB1234", ())),
        )
        self.assertEqual(find_plate(recognized), "MH12AB1234")


class TestPlateExtractor(unittest.TestCase):
    def test_raw_pass_match_skips_enhancement(self):
        rec = _ScriptedRecognizer(_text(["DL 1O AB 1234"]))
        enhancer = _Enhancer()
        ext = PlateExtractor(rec, enhancer=enhancer)
        self.assertEqual(ext.extract(RAW), "DL10AB1234")
        self.assertEqual(rec.calls, [RAW])
        self.assertEqual(enhancer.calls, 0)

    def test_enhanced_pass_after_no_match(self):
        rec = _ScriptedRecognizer(_text(["SPEED LIMIT"]), _text(["MH12AB1234"]))
        enhancer = _Enhancer()
        ext = PlateExtractor(rec, enhancer=enhancer)
        self.assertEqual(ext.extract(RAW), "MH12AB1234")
        self.assertEqual(rec.calls, [RAW, ENHANCED])
        self.assertEqual(enhancer.calls, 1)

    def test_enhanced_pass_after_empty_text(self):
        rec = _ScriptedRecognizer(RecognizedText(), _text(["MH12AB1234"]))
        ext = PlateExtractor(rec, enhancer=_Enhancer())
        self.assertEqual(ext.extract(RAW), "MH12AB1234")

    def test_recognizer_error_is_no_match_for_that_pass(self):
        rec = _ScriptedRecognizer(RecognitionError("engine down"), _text(["MH12AB1234"]))
        ext = PlateExtractor(rec, enhancer=_Enhancer())
        self.assertEqual(ext.extract(RAW), "MH12AB1234")

        rec = _ScriptedRecognizer(_text(["nothing"]), RuntimeError("boom"))
        ext = PlateExtractor(rec, enhancer=_Enhancer())
        self.assertIsNone(ext.extract(RAW))

    def test_no_match_after_both_passes(self):
        rec = _ScriptedRecognizer(_text(["nothing"]), _text(["still nothing"]))
        self.assertIsNone(PlateExtractor(rec, enhancer=_Enhancer()).extract(RAW))
        self.assertEqual(len(rec.calls), 2)

    def test_undecodable_image_skips_enhanced_pass(self):
        rec = _ScriptedRecognizer(_text(["nothing"]))
        ext = PlateExtractor(rec, enhancer=_Enhancer(result=None))
        self.assertIsNone(ext.extract(RAW))
        self.assertEqual(rec.calls, [RAW])

    def test_enhancement_disabled(self):
        rec = _ScriptedRecognizer(_text(["nothing"]))
        enhancer = _Enhancer()
        ext = PlateExtractor(rec, enhance_enabled=False, enhancer=enhancer)
        self.assertIsNone(ext.extract(RAW))
        self.assertEqual(enhancer.calls, 0)


if __name__ == "__main__":
    unittest.main()
