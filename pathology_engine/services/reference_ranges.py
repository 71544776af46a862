"""Selection of the single reference range that applies to a patient.

A parameter usually carries several overlapping age/gender bands (neonatal,
paediatric, adult male, adult female, ...). Bands containing the patient's age
are ranked; when none contains it, a conservative fallback is chosen so that
adults never inherit a neonatal range.
"""

import logging
import math
import re
from dataclasses import dataclass

from pathology_engine.config import settings
from pathology_engine.schemas.catalog import NormalValueBand
from pathology_engine.schemas.report import ResolvedParameter
from pathology_engine.services.age_units import band_bounds_in_days

logger = logging.getLogger(__name__)

TEXT_BAND = "Text"
NUMERIC_BAND = "Numeric range"


@dataclass(frozen=True)
class _RankedBand:
    band: NormalValueBand
    lower: float
    upper: float
    gender_score: int

    @property
    def width(self) -> float:
        return self.upper - self.lower

    @property
    def finite(self) -> bool:
        return math.isfinite(self.width)


def _gender_key(value: str | None) -> str:
    return str(value or "").strip().lower()


def _rank(band: NormalValueBand, gender: str) -> _RankedBand:
    lower, upper = band_bounds_in_days(band)
    exact = bool(gender) and _gender_key(band.gender or "Any") == gender
    return _RankedBand(band=band, lower=lower, upper=upper, gender_score=0 if exact else 1)


def choose_normal_value(
    bands: list[NormalValueBand],
    patient_days: int,
    gender: str | None,
    neonatal_max_days: int | None = None,
) -> NormalValueBand | None:
    if not bands:
        return None
    baby_limit = settings.neonatal_band_max_days if neonatal_max_days is None else neonatal_max_days
    g = _gender_key(gender)

    ranked = [_rank(band, g) for band in bands]
    matches = [r for r in ranked if r.lower <= patient_days <= r.upper]

    if matches:
        def match_key(r: _RankedBand):
            is_baby = patient_days > baby_limit and math.isfinite(r.upper) and r.upper <= baby_limit
            return (
                0 if r.finite else 1,
                1 if is_baby else 0,
                r.width,
                r.gender_score,
                -r.lower,
            )

        chosen = min(matches, key=match_key)
        logger.debug(
            "Chose band %s-%s (%s) for %s days, gender %r",
            chosen.band.min_age,
            chosen.band.max_age,
            chosen.band.gender,
            patient_days,
            g,
        )
        return chosen.band

    gender_pool = [r for r in ranked if g and _gender_key(r.band.gender or "Any") == g]
    any_pool = [r for r in ranked if _gender_key(r.band.gender or "Any") == "any"]
    pool = gender_pool or any_pool or ranked

    # Widest band first: a narrow neonatal band is the worst guess for an unmatched age.
    def fallback_key(r: _RankedBand):
        return (0 if r.finite else 1, -r.width, -r.upper)

    chosen = min(pool, key=fallback_key)
    logger.debug("No band contains %s days; falling back to %s-%s", patient_days, chosen.band.min_age, chosen.band.max_age)
    return chosen.band


def band_display(band: NormalValueBand) -> str:
    if band.type == TEXT_BAND and band.text_value:
        return band.text_value
    return band.display_in_report or f"{band.lower_value}-{band.upper_value}"


def apply_band(param: ResolvedParameter, band: NormalValueBand | None) -> None:
    """Copy the chosen band onto a working row and refresh its display range."""
    if band is None:
        return
    param.type = band.type or param.type
    param.text_value = band.text_value
    param.display_in_report = band.display_in_report or (
        f"{band.lower_value}-{band.upper_value}" if band.type == NUMERIC_BAND else ""
    )
    param.lower_value = band.lower_value
    param.upper_value = band.upper_value
    param.normal_remark = band.remark
    if param.type == TEXT_BAND:
        param.normal_range = param.text_value or param.display_in_report
    else:
        param.normal_range = param.display_in_report or f"{param.lower_value}-{param.upper_value}"


_BOUND_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")


def _bound_text(part: str) -> str:
    match = _BOUND_RE.match(part)
    if not match:
        return ""
    value = float(match.group(1))
    return str(int(value)) if value.is_integer() else str(value)


def range_max(normal_range: str | None) -> str:
    """Upper bound text of a "a-b" or "<b" range, or ""."""
    text = str(normal_range or "").strip().lower()
    if "-" in text:
        parts = text.split("-")
        return _bound_text(parts[1].strip()) if len(parts) == 2 else ""
    if "<" in text:
        return _bound_text(text.replace("<", "").strip())
    return ""


def range_min(normal_range: str | None) -> str:
    """Lower bound text of a "a-b" or ">a" range, or ""."""
    text = str(normal_range or "").strip().lower()
    if "-" in text:
        parts = text.split("-")
        return _bound_text(parts[0].strip()) if len(parts) == 2 else ""
    if ">" in text:
        return _bound_text(text.replace(">", "").strip())
    return ""
