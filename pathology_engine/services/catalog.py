import logging
import re

from rapidfuzz import fuzz

from pathology_engine.config import settings
from pathology_engine.schemas.catalog import (
    Catalog,
    NamedUnit,
    ParameterDefinition,
    TestDefinition,
    TestReference,
    UnresolvedUnit,
)

logger = logging.getLogger(__name__)

GENERAL_CATEGORY = "GENERAL"
GENERIC_CATEGORY_RE = re.compile(r"^(general|others?|pathology)$", re.IGNORECASE)

CATEGORY_KEYWORDS: dict[str, str] = {
    "CBC": "HAEMATOLOGY",
    "C.B.C": "HAEMATOLOGY",
    "COMPLETE BLOOD COUNT": "HAEMATOLOGY",
    "COMPLETE BLOOD PICTURE": "HAEMATOLOGY",
    "CHOLESTEROL": "BIOCHEMISTRY",
    "LIPID": "BIOCHEMISTRY",
    "BLOOD SUGAR": "BIOCHEMISTRY",
    "LIVER": "BIOCHEMISTRY",
    "KIDNEY": "BIOCHEMISTRY",
    "THYROID": "ENDOCRINOLOGY",
    "URINE": "URINE ANALYSIS",
    "STOOL": "CLINICAL PATHOLOGY",
    "ECG": "CARDIOLOGY",
    "X-RAY": "RADIOLOGY",
    "M.P. CARD": "MICROBIOLOGY",
    "MP CARD": "MICROBIOLOGY",
    "MALARIA PARASITE": "MICROBIOLOGY",
}
HAEMATOLOGY_MARKERS = ("CBC", "CBP", "COMPLETEBLOODCOUNT", "COMPLETEBLOODPICTURE")

NON_PATHOLOGY_CATEGORIES = ("RADIOLOGY", "IMAGING", "XRAY", "X-RAY")
# Space padded so that e.g. "HCT" never matches " CT ".
NON_PATHOLOGY_NAME_TOKENS = (
    " X-RAY ", " XRAY ", " X RAY ",
    " ULTRASOUND ", " USG ", " SONOGRAPHY ",
    " MRI ", " MR I ",
    " CT ", " NCCT ", " CECT ", " HRCT ", " PET CT ", " CT ANGIO ", " MR ANGIO ",
    " MAMMOG", " DOPPLER ", " ECHO ", " FLUORO ", " HSG ", " IVP ", " BARIUM ",
)


def _resolve_unit(unit, unit_names: dict[str, str]):
    if isinstance(unit, UnresolvedUnit) and unit.id in unit_names:
        return NamedUnit(name=unit_names[unit.id])
    return unit


def _with_units(model: ParameterDefinition | TestDefinition, unit_names: dict[str, str]):
    return model.model_copy(update={"unit": _resolve_unit(model.unit, unit_names)})


def resolve_units(catalog: Catalog) -> Catalog:
    """Replace unit ids that the unit table knows with their display names."""
    unit_names = {record.id: record.name for record in catalog.units}
    tests = []
    for test in catalog.tests:
        resolved = _with_units(test, unit_names)
        resolved = resolved.model_copy(
            update={"parameters": [_with_units(param, unit_names) for param in test.parameters]}
        )
        tests.append(resolved)
    unresolved = sum(
        1
        for test in tests
        for item in [test, *test.parameters]
        if isinstance(item.unit, UnresolvedUnit)
    )
    if unresolved:
        logger.warning("%d unit reference(s) could not be resolved against the unit table", unresolved)
    return catalog.model_copy(update={"tests": tests})


def load_catalog(payload: dict | list) -> Catalog:
    """Validate a definitions payload (catalog dict or bare test list) and resolve its units."""
    if isinstance(payload, list):
        payload = {"tests": payload}
    return resolve_units(Catalog.model_validate(payload))


def normalize_test_name(name: str | None) -> str:
    return re.sub(r"\s+", "", str(name or "").strip().upper().replace(".", ""))


def _names_match(query: str, test: TestDefinition) -> bool:
    for candidate in (normalize_test_name(test.name), normalize_test_name(test.short_name)):
        if not candidate:
            continue
        if candidate == query or query in candidate or candidate in query:
            return True
    return False


def _fuzzy_match_test(catalog: Catalog, query: str, threshold: int) -> TestDefinition | None:
    best_score = -1.0
    best_test = None
    for test in catalog.tests:
        for candidate in (test.name, test.short_name):
            if not candidate:
                continue
            score = fuzz.ratio(query, normalize_test_name(candidate))
            if score > best_score:
                best_score = score
                best_test = test
    if best_score >= threshold:
        logger.info("Fuzzy matched %r to %r (score %.1f)", query, best_test.name, best_score)
        return best_test
    return None


def find_test_definition(
    catalog: Catalog,
    test_name: str,
    threshold: int | None = None,
    enable_fuzzy: bool | None = None,
) -> TestDefinition | None:
    query = normalize_test_name(test_name)
    if not query:
        return None
    for test in catalog.tests:
        if _names_match(query, test):
            return test

    use_fuzzy = settings.catalog_enable_fuzzy_fallback if enable_fuzzy is None else enable_fuzzy
    if not use_fuzzy:
        return None
    score_threshold = threshold if threshold is not None else settings.catalog_fuzzy_threshold
    return _fuzzy_match_test(catalog, query, score_threshold)


def find_included_test(catalog: Catalog, reference: TestReference) -> TestDefinition | None:
    wanted_name = reference.name.lower()
    for test in catalog.tests:
        if reference.id and test.id == reference.id:
            return test
        if wanted_name and test.name.lower() == wanted_name:
            return test
    return None


def resolve_test_category(catalog: Catalog, test_name: str, item_category: str | None = None) -> str:
    """Category for a receipt item: its own unless generic, then the catalog's, then keywords."""
    if item_category and not GENERIC_CATEGORY_RE.match(item_category.strip()):
        return item_category

    match = find_test_definition(catalog, test_name, enable_fuzzy=False)
    if match is not None and match.category:
        return match.category

    upper = str(test_name or "").upper()
    normalized = normalize_test_name(test_name)
    if not normalized:
        return GENERAL_CATEGORY
    if any(marker in normalized for marker in HAEMATOLOGY_MARKERS):
        return "HAEMATOLOGY"
    for keyword, category in CATEGORY_KEYWORDS.items():
        keyword_norm = normalize_test_name(keyword)
        if keyword in upper or normalized in keyword_norm or keyword_norm in normalized:
            return category
    return GENERAL_CATEGORY


def is_non_pathology(catalog: Catalog, test_name: str, category: str | None = None) -> bool:
    """True for radiology and imaging items, which never get a pathology report."""
    upper_category = str(category or "").upper()
    if any(token in upper_category for token in NON_PATHOLOGY_CATEGORIES):
        return True
    spaced = f" {str(test_name or '').upper()} "
    if any(token in spaced for token in NON_PATHOLOGY_NAME_TOKENS):
        return True
    return "RADIOLOGY" in resolve_test_category(catalog, test_name).upper()
