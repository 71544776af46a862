"""Age arithmetic on a common day scale.

Unit strings in the catalog are free text, so detection follows a fixed
priority: Days, then Months, then Years. Anything unrecognised is read as
Years. Months count 30 days and years 365; no calendar arithmetic.
"""

import math
import re

from pathology_engine.schemas.catalog import NormalValueBand
from pathology_engine.schemas.report import AgeUnit, PatientContext

DAYS_PER_UNIT: dict[AgeUnit, int] = {
    AgeUnit.DAYS: 1,
    AgeUnit.MONTHS: 30,
    AgeUnit.YEARS: 365,
}

# Unit field rules: (unit, substrings, exact tokens). Order is significant,
# "days" contains a "y" and must never reach the Years row.
UNIT_FIELD_RULES: tuple[tuple[AgeUnit, tuple[str, ...], tuple[str, ...]], ...] = (
    (AgeUnit.DAYS, ("day", "days"), ("d",)),
    (AgeUnit.MONTHS, ("month", "months", "mon", "mons", "mo", "mos", "mth", "mths"), ()),
    (AgeUnit.YEARS, ("year", "years", "yr", "yrs", "y"), ()),
)

# Free text rules for stored ages such as "3 M" or "45 Days".
FREE_TEXT_RULES: tuple[tuple[AgeUnit, re.Pattern], ...] = (
    (AgeUnit.DAYS, re.compile(r"(?<![a-z])(days|day|d)\b")),
    (AgeUnit.MONTHS, re.compile(r"(?<![a-z])(months|month|mons|mon|mos|mo|mths|mth|m)\b")),
    (AgeUnit.YEARS, re.compile(r"(?<![a-z])(years|year|yrs|yr|y)\b")),
)

NUMBER_RE = re.compile(r"([0-9]*\.?[0-9]+)")
LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")
PACKED_RANGE_RE = re.compile(
    r"([0-9]*\.?[0-9]+)\s*-\s*([0-9]*\.?[0-9]+)\s*(years?|yrs?|yr|y|months?|mos?|mths?|m|days?|d)",
    re.IGNORECASE,
)


def detect_unit(unit: str | None) -> AgeUnit:
    u = str(unit or "").strip().lower()
    for age_unit, substrings, exact in UNIT_FIELD_RULES:
        if u in exact or any(token in u for token in substrings):
            return age_unit
    return AgeUnit.YEARS


def detect_free_text_unit(text: str | None) -> AgeUnit:
    lower = str(text or "").lower()
    for age_unit, pattern in FREE_TEXT_RULES:
        if pattern.search(lower):
            return age_unit
    return AgeUnit.YEARS


def to_days(value: float, unit: str | AgeUnit | None) -> int:
    age_unit = unit if isinstance(unit, AgeUnit) else detect_unit(unit)
    return int(round(value * DAYS_PER_UNIT[age_unit]))


def parse_stored_age_to_days(text: str | None) -> int | None:
    if not text:
        return None
    raw = str(text).strip()
    match = NUMBER_RE.search(raw)
    if not match:
        return None
    return to_days(float(match.group(1)), detect_free_text_unit(raw))


def leading_number(text: str | None) -> float | None:
    match = LEADING_NUMBER_RE.match(str(text or ""))
    if not match:
        return None
    return float(match.group(1))


def patient_age_in_days(patient: PatientContext) -> int:
    return to_days(patient.age_value, patient.age_unit)


def band_bounds_in_days(band: NormalValueBand) -> tuple[float, float]:
    """Return the inclusive ``(min, max)`` age of a band in days.

    A missing bound is open: ``-inf`` for min and ``+inf`` for max.
    """
    packed = PACKED_RANGE_RE.search(band.min_age)
    if packed:
        unit = detect_free_text_unit(packed.group(3))
        return float(to_days(float(packed.group(1)), unit)), float(to_days(float(packed.group(2)), unit))

    min_unit = band.min_age_unit or band.age_unit
    max_unit = band.max_age_unit or band.age_unit
    min_num = leading_number(band.min_age)
    max_num = leading_number(band.max_age)

    if min_num is not None and min_unit:
        lower = float(to_days(min_num, min_unit))
    else:
        parsed = parse_stored_age_to_days(band.min_age)
        lower = -math.inf if parsed is None else float(parsed)

    if max_num is not None and max_unit:
        upper = float(to_days(max_num, max_unit))
    else:
        parsed = parse_stored_age_to_days(band.max_age)
        upper = math.inf if parsed is None else float(parsed)
    return lower, upper
