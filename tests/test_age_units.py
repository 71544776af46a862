import math

import pytest

from pathology_engine.schemas.catalog import NormalValueBand
from pathology_engine.schemas.report import AgeUnit, PatientContext
from pathology_engine.services.age_units import (
    band_bounds_in_days,
    detect_free_text_unit,
    detect_unit,
    leading_number,
    parse_stored_age_to_days,
    patient_age_in_days,
    to_days,
)


@pytest.mark.parametrize("value", [0, 1, 2.5, 18, 100])
def test_months_and_years_scale_flat(value):
    assert to_days(value, "Months") == round(value * 30)
    assert to_days(value, "Years") == round(value * 365)


@pytest.mark.parametrize("unit", ["y", "yrs", "Years", "year", "YR"])
def test_year_spellings_agree(unit):
    assert to_days(4, unit) == 1460


def test_days_checked_before_years():
    # "days" contains a "y"
    assert detect_unit("days") == AgeUnit.DAYS
    assert detect_unit("d") == AgeUnit.DAYS
    assert detect_unit("mths") == AgeUnit.MONTHS
    assert detect_unit("mo") == AgeUnit.MONTHS


def test_unknown_unit_defaults_to_years():
    assert detect_unit("fortnights") == AgeUnit.YEARS
    assert detect_unit("") == AgeUnit.YEARS
    assert to_days(2, None) == 730


def test_free_text_ages():
    assert parse_stored_age_to_days("45 Days") == 45
    assert parse_stored_age_to_days("3 M") == 90
    assert parse_stored_age_to_days("2 yrs") == 730
    assert parse_stored_age_to_days("12") == 4380
    assert parse_stored_age_to_days("") is None
    assert parse_stored_age_to_days("newborn") is None
    assert detect_free_text_unit("6 mos") == AgeUnit.MONTHS


def test_leading_number_reads_prefix_only():
    assert leading_number("4.5 g/dL") == 4.5
    assert leading_number("  -2") == -2
    assert leading_number("Reactive") is None
    assert leading_number(None) is None


def test_patient_age_in_days():
    assert patient_age_in_days(PatientContext(age_value=35, age_unit=AgeUnit.YEARS)) == 12775
    assert patient_age_in_days(PatientContext(age_value=3, age_unit=AgeUnit.MONTHS)) == 90
    assert patient_age_in_days(PatientContext(age_value=10, age_unit=AgeUnit.DAYS)) == 10


def test_packed_band_range():
    band = NormalValueBand(minAge="1-10 Days")
    assert band_bounds_in_days(band) == (1.0, 10.0)
    band = NormalValueBand(minAge="1 - 6 m")
    assert band_bounds_in_days(band) == (30.0, 180.0)


def test_band_with_companion_unit_fields():
    band = NormalValueBand(minAge="2", maxAge="12", minAgeUnit="Months", maxAgeUnit="Years")
    assert band_bounds_in_days(band) == (60.0, 4380.0)
    band = NormalValueBand(minAge=0, maxAge=28, ageUnit="Days")
    assert band_bounds_in_days(band) == (0.0, 28.0)


def test_missing_bounds_are_open():
    lower, upper = band_bounds_in_days(NormalValueBand(maxAge="18 Years"))
    assert lower == -math.inf
    assert upper == 6570.0
    lower, upper = band_bounds_in_days(NormalValueBand())
    assert (lower, upper) == (-math.inf, math.inf)
