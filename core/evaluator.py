import logging

from core.contracts import RunOutcome
from plate import normalize

L = logging.getLogger("stillcheck.evaluator")


def evaluate(plate1: str | None, plate2: str | None, plate3: str | None) -> RunOutcome:
    """PASS iff all three plates were extracted and agree after match-time normalization."""
    if plate1 is None or plate2 is None or plate3 is None:
        L.info(
            "Not all plates detected: photo1=%s photo2=%s video=%s -> FAIL",
            plate1,
            plate2,
            plate3,
        )
        return RunOutcome(passed=False, plate1=plate1, plate2=plate2, plate3=plate3)

    n1 = normalize.normalize_for_match(plate1)
    n2 = normalize.normalize_for_match(plate2)
    n3 = normalize.normalize_for_match(plate3)
    passed = n1 == n2 == n3
    L.info(
        "Compared normalized plates: photo1=%s photo2=%s video=%s -> %s",
        n1,
        n2,
        n3,
        "PASS" if passed else "FAIL",
    )
    return RunOutcome(passed=passed, plate1=plate1, plate2=plate2, plate3=plate3)


__all__ = ["evaluate"]
