from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ToleranceVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    passed: bool
    match_percent: float
    tolerance: float | None = None
    message: str


def format_tolerance_message(match_percent: float, tolerance: float | None = None) -> str:
    parts = []
    if tolerance is not None:
        parts.append(f"Tolerance: {tolerance:.2f}")
    parts.append(f"Match: {match_percent:.2f}%")
    return "(" + ", ".join(parts) + ")"


def evaluate_tolerance(match_percent: float, tolerance: float | None = None) -> ToleranceVerdict:
    """Decide whether a match percentage is acceptable.

    A comparison passes when the match percentage plus the tolerance reaches
    100, so a tolerance of ``5`` accepts anything from ``95.00`` up.
    """
    if tolerance is not None and not 0 <= tolerance <= 100:
        raise ValueError(f"tolerance must be within 0..100, got {tolerance}")

    passed = match_percent + (tolerance or 0) >= 100
    detail = format_tolerance_message(match_percent, tolerance)
    if passed:
        message = f"baseline and actual images match {detail}"
    else:
        message = f"baseline and actual images are different {detail}"
    return ToleranceVerdict(
        passed=passed,
        match_percent=match_percent,
        tolerance=tolerance,
        message=message,
    )
