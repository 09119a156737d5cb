import unittest
from unittest import mock

from core.evaluator import evaluate


class TestEvaluate(unittest.TestCase):
    def test_eight_b_drift_passes(self):
        outcome = evaluate("DL8CAB1234", "DLBCAB1234", "DLBCAB1234")
        self.assertTrue(outcome.passed)
        self.assertEqual(outcome.plate1, "DL8CAB1234")
        self.assertEqual(outcome.detected_plate, "DLBCAB1234")
        self.assertEqual(
            outcome.message, "Vehicle Number DLBCAB1234 Matched Successfully!"
        )

    def test_different_plates_fail(self):
        outcome = evaluate("MH12AB1234", "MH12AB1234", "MH12AB1235")
        self.assertFalse(outcome.passed)
        self.assertEqual(
            outcome.message, "Vehicle Number MH12AB1235 Did Not Match - Test Failed!"
        )

    def test_missing_plate_fails_without_normalizing(self):
        cases = [
            (None, "DL8CAB1234", "DL8CAB1234"),
            ("DL8CAB1234", None, "DL8CAB1234"),
            ("DL8CAB1234", "DL8CAB1234", None),
            (None, None, None),
        ]
        for plates in cases:
            with self.subTest(plates=plates):
                with mock.patch("plate.normalize.normalize_for_match") as norm:
                    outcome = evaluate(*plates)
                self.assertFalse(outcome.passed)
                norm.assert_not_called()

    def test_detected_plate_prefers_latest_capture(self):
        self.assertEqual(evaluate("AA1A111", "BB2B222", None).detected_plate, "BB2B222")
        self.assertEqual(evaluate("AA1A111", None, None).detected_plate, "AA1A111")
        outcome = evaluate(None, None, None)
        self.assertIsNone(outcome.detected_plate)
        self.assertEqual(
            outcome.message, "Vehicle Number Not Detected Did Not Match - Test Failed!"
        )

    def test_normalization_applied_to_each_plate(self):
        with mock.patch(
            "plate.normalize.normalize_for_match", side_effect=lambda p: "SAME"
        ) as norm:
            outcome = evaluate("X", "Y", "Z")
        self.assertTrue(outcome.passed)
        self.assertEqual([c.args[0] for c in norm.call_args_list], ["X", "Y", "Z"])


if __name__ == "__main__":
    unittest.main()
