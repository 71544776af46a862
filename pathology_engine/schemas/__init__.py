from pathology_engine.schemas.catalog import (
    Catalog,
    NamedUnit,
    NormalValueBand,
    ParameterDefinition,
    TestDefinition,
    TestReference,
    UnitRecord,
    UnresolvedUnit,
)
from pathology_engine.schemas.report import (
    AgeUnit,
    DropdownOption,
    PatientContext,
    ResolvedParameter,
    ResolvedTest,
    ResultStatus,
)

__all__ = [
    "AgeUnit",
    "Catalog",
    "DropdownOption",
    "NamedUnit",
    "NormalValueBand",
    "ParameterDefinition",
    "PatientContext",
    "ResolvedParameter",
    "ResolvedTest",
    "ResultStatus",
    "TestDefinition",
    "TestReference",
    "UnitRecord",
    "UnresolvedUnit",
]
