from pathology_engine.schemas.catalog import Catalog
from pathology_engine.services.catalog import load_catalog

UNITS = [
    {"_id": "64b0c0a1e4b0a1b2c3d40001", "name": "g/dL"},
    {"_id": "64b0c0a1e4b0a1b2c3d40002", "name": "mg/dL"},
    {"_id": "64b0c0a1e4b0a1b2c3d40003", "name": "U/L"},
    {"_id": "64b0c0a1e4b0a1b2c3d40004", "name": "/cumm"},
    {"_id": "64b0c0a1e4b0a1b2c3d40005", "name": "%"},
    {"_id": "64b0c0a1e4b0a1b2c3d40006", "name": "lakhs/cumm"},
    {"_id": "64b0c0a1e4b0a1b2c3d40007", "name": "/hpf"},
]

G_DL = "64b0c0a1e4b0a1b2c3d40001"
MG_DL = "64b0c0a1e4b0a1b2c3d40002"
U_L = "64b0c0a1e4b0a1b2c3d40003"
CUMM = "64b0c0a1e4b0a1b2c3d40004"
PERCENT = "64b0c0a1e4b0a1b2c3d40005"
LAKHS = "64b0c0a1e4b0a1b2c3d40006"
HPF = "64b0c0a1e4b0a1b2c3d40007"

PROTEIN_PANEL_ID = "64b0c0a1e4b0a1b2c3d41001"
ENZYME_PANEL_ID = "64b0c0a1e4b0a1b2c3d41002"
BILIRUBIN_ID = "64b0c0a1e4b0a1b2c3d41003"


def _numeric(lower: str, upper: str, gender: str = "Any", min_age: str = "0 Years", max_age: str = "100 Years") -> dict:
    return {
        "type": "Numeric range",
        "gender": gender,
        "minAge": min_age,
        "maxAge": max_age,
        "lowerValue": lower,
        "upperValue": upper,
    }


def _text(value: str, gender: str = "Any") -> dict:
    return {"type": "Text", "gender": gender, "minAge": "0 Years", "maxAge": "100 Years", "textValue": value}


TEST_DEFINITIONS = [
    {
        "_id": "64b0c0a1e4b0a1b2c3d41000",
        "name": "LIVER FUNCTION TEST",
        "shortName": {"testName": "LFT"},
        "category": {"name": "BIOCHEMISTRY"},
        "testType": "panel",
        "tests": [
            {"_id": PROTEIN_PANEL_ID, "name": "PROTEIN PANEL"},
            ENZYME_PANEL_ID,
            BILIRUBIN_ID,
        ],
    },
    {
        "_id": PROTEIN_PANEL_ID,
        "name": "PROTEIN PANEL",
        "category": "BIOCHEMISTRY",
        "testType": "multiple",
        "parameters": [
            {"order": 1, "name": "Albumin", "unit": G_DL, "normalValues": [_numeric("3.5", "5.0")]},
            {"order": 2, "name": "Total Protein", "unit": G_DL, "normalValues": [_numeric("6.0", "8.3")]},
            {
                "order": 3,
                "name": "Globulin",
                "unit": G_DL,
                "resultType": "formula",
                "formula": "{Total Protein} - {Albumin}",
                "normalValues": [_numeric("2.0", "3.5")],
            },
            {
                "order": 4,
                "name": "A:G Ratio",
                "unit": {"name": "ratio"},
                "resultType": "formula",
                "formula": "A:G Ratio = {Albumin} / {Globulin}",
                "normalValues": [_numeric("1.1", "2.5")],
            },
        ],
    },
    {
        "_id": ENZYME_PANEL_ID,
        "name": "ENZYME PANEL",
        "category": "BIOCHEMISTRY",
        "testType": "multiple",
        "parameters": [
            {
                "order": 2,
                "name": "SGPT (ALT)",
                "unit": U_L,
                "normalValues": [_numeric("0", "45", "Male"), _numeric("0", "34", "Female")],
            },
            {
                "order": 1,
                "name": "SGOT (AST)",
                "unit": U_L,
                "normalValues": [_numeric("0", "40", "Male"), _numeric("0", "32", "Female")],
            },
            {"order": 3, "name": "Alkaline Phosphatase", "unit": U_L, "removed": True},
        ],
    },
    {
        "_id": BILIRUBIN_ID,
        "name": "SERUM BILIRUBIN",
        "category": "BIOCHEMISTRY",
        "testType": "single",
        "unit": MG_DL,
        "normalValues": [_numeric("0.2", "1.2")],
    },
    {
        "_id": "64b0c0a1e4b0a1b2c3d42000",
        "name": "COMPLETE BLOOD COUNT",
        "shortName": {"testName": "CBC"},
        "category": "HAEMATOLOGY",
        "testType": "multiple",
        "parameters": [
            {
                "order": 1,
                "name": "Haemoglobin",
                "unit": G_DL,
                "normalValues": [
                    {"type": "Numeric range", "gender": "Any", "minAge": "1-10 Days", "lowerValue": "14.5", "upperValue": "22.5"},
                    _numeric("10.0", "14.0", "Any", "11 Days", "2 Months"),
                    _numeric("11.0", "15.5", "Any", "0 Years", "18 Years"),
                    _numeric("13.5", "18.0", "Male", "18 Years", "100 Years"),
                    _numeric("12.0", "15.5", "Female", "18 Years", "100 Years"),
                ],
            },
            {"order": 2, "name": "Total Leucocyte Count", "unit": CUMM, "normalValues": [_numeric("4000", "11000")]},
            {"order": 3, "name": "Neutrophils", "unit": PERCENT, "groupBy": "Differential Count", "normalValues": [_numeric("40", "75")]},
            {"order": 4, "name": "Lymphocytes", "unit": PERCENT, "groupBy": "Differential Count", "normalValues": [_numeric("20", "40")]},
            {"order": 5, "name": "Eosinophils", "unit": PERCENT, "groupBy": "differential  count", "normalValues": [_numeric("1", "6")]},
            {"order": 6, "name": "Platelet Count", "unit": LAKHS, "normalValues": [_numeric("1.5", "4.5")]},
        ],
    },
    {
        "_id": "64b0c0a1e4b0a1b2c3d43000",
        "name": "URINE ROUTINE",
        "category": "URINE ANALYSIS",
        "testType": "multiple",
        "parameters": [
            {
                "order": 1,
                "name": "Colour",
                "groupBy": "Physical",
                "resultType": "dropdown",
                "dropdownOptions": "Pale Yellow, Yellow, Dark Yellow, Red",
                "defaultResult": "Pale Yellow",
                "normalValues": [_text("Pale Yellow, Yellow")],
            },
            {"order": 2, "name": "Reaction (pH)", "groupBy": "Chemical", "normalValues": [_numeric("4.6", "8.0")]},
            {
                "order": 3,
                "name": "Appearance",
                "groupBy": "physical ",
                "normalValues": [_text("Clear")],
            },
            {"order": 4, "name": "Urine Protein", "groupBy": "Chemical", "normalValues": [_text("Absent")]},
            {"order": 5, "name": "Pus Cells", "unit": HPF, "normalValues": [_numeric("0", "5")]},
        ],
    },
    {
        "_id": "64b0c0a1e4b0a1b2c3d44000",
        "name": "BLOOD GROUP",
        "category": "IMMUNOHAEMATOLOGY",
        "testType": "single",
        "resultType": "dropdown",
        "dropdownOptions": "A+, A-, B+, B-, AB+, AB-, O+, O-",
    },
    {
        "_id": "64b0c0a1e4b0a1b2c3d45000",
        "name": "HIV I & II",
        "category": "SEROLOGY",
        "testType": "single",
        "normalValues": [_text("Non Reactive")],
    },
    {
        "_id": "64b0c0a1e4b0a1b2c3d46000",
        "name": "LIPID PROFILE",
        "category": "BIOCHEMISTRY",
        "testType": "multiple",
        "parameters": [
            {
                "order": 1,
                "name": "Total Cholesterol",
                "unit": MG_DL,
                "normalValues": [{"type": "Numeric range", "gender": "Any", "displayInReport": "<200", "upperValue": "200"}],
            },
            {
                "order": 2,
                "name": "HDL Cholesterol",
                "unit": MG_DL,
                "normalValues": [{"type": "Numeric range", "gender": "Any", "displayInReport": ">40", "lowerValue": "40"}],
            },
            {"order": 3, "name": "LDL Cholesterol", "unit": MG_DL, "normalValues": [_numeric("0", "100")]},
            {
                "order": 4,
                "name": "LDL/HDL Ratio",
                "resultType": "formula",
                "formula": "{LDL Cholesterol} ÷ {HDL Cholesterol}",
                "normalValues": [_numeric("1.5", "3.5")],
            },
        ],
    },
    {
        "_id": "64b0c0a1e4b0a1b2c3d47000",
        "name": "X-RAY CHEST PA VIEW",
        "category": "RADIOLOGY",
        "testType": "single",
    },
]


def load_seed_catalog() -> Catalog:
    return load_catalog({"tests": TEST_DEFINITIONS, "units": UNITS})
