from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pathology_engine.schemas.catalog import NormalValueBand


class AgeUnit(str, Enum):
    DAYS = "Days"
    MONTHS = "Months"
    YEARS = "Years"


class ResultStatus(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"
    CRITICAL = "critical"
    PENDING = "pending"
    ABNORMAL = "abnormal"


class PatientContext(BaseModel):
    """Patient demographics that drive reference-range selection."""
    model_config = ConfigDict(populate_by_name=True)

    age_value: float = Field(default=0, ge=0, alias="ageValue")
    age_unit: AgeUnit = Field(default=AgeUnit.YEARS, alias="ageUnit")
    gender: str = ""


class DropdownOption(BaseModel):
    id: str
    label: str


class ResolvedParameter(BaseModel):
    """Working row of a report: one parameter with its chosen range, result and status."""
    name: str
    parameter_id: str | None = None
    unit: str = ""
    group_by: str = ""
    outer_group: str = Field(default="", description="Name of the included test the row came from")
    result_type: str = "manual"
    order: int = 0
    is_optional: bool = False
    removed: bool = False
    type: str = ""
    text_value: str = ""
    display_in_report: str = ""
    lower_value: str = ""
    upper_value: str = ""
    normal_remark: str = ""
    normal_range: str = ""
    options: list[DropdownOption] = Field(default_factory=list)
    selected_option_id: str | None = None
    all_normal_values: list[NormalValueBand] = Field(default_factory=list)
    formula_expr: str = ""
    result: str = ""
    status: ResultStatus = ResultStatus.PENDING
    exclude_from_print: bool = False


class ResolvedTest(BaseModel):
    test_name: str
    category: str = "GENERAL"
    parameters: list[ResolvedParameter] = Field(default_factory=list)
    exclude_from_print: bool = False


class ReceiptTestItem(BaseModel):
    """A tested item as it appears on a receipt, before it is linked to the catalog."""
    name: str
    category: str | None = None


class ResolveReportRequest(BaseModel):
    patient: PatientContext = Field(default_factory=PatientContext)
    tests: list[ReceiptTestItem | str]
    results: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Entered values keyed by test name, then parameter name",
    )


class ResolveReportResponse(BaseModel):
    tests: list[ResolvedTest]
    unmatched_tests: list[str]
    skipped_tests: list[str]
