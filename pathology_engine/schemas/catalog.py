import re
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def _to_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip() if isinstance(value, str) else str(value)


Text = Annotated[str, BeforeValidator(_to_text)]


class CatalogModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NamedUnit(CatalogModel):
    kind: Literal["named"] = "named"
    name: str


class UnresolvedUnit(CatalogModel):
    kind: Literal["unresolved"] = "unresolved"
    id: str


Unit = NamedUnit | UnresolvedUnit


def _coerce_unit(value):
    if value is None or isinstance(value, (NamedUnit, UnresolvedUnit)):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if OBJECT_ID_RE.match(raw):
            return UnresolvedUnit(id=raw)
        return NamedUnit(name=raw)
    if isinstance(value, dict):
        if "kind" in value:
            return value
        name = _to_text(value.get("name"))
        if name:
            return NamedUnit(name=name)
        unit_id = _to_text(value.get("_id") or value.get("id"))
        if unit_id:
            return UnresolvedUnit(id=unit_id)
        return None
    return value


UnitField = Annotated[Unit | None, BeforeValidator(_coerce_unit)]


def unit_display_name(unit: NamedUnit | UnresolvedUnit | None) -> str:
    if isinstance(unit, NamedUnit):
        return unit.name
    return ""


class UnitRecord(CatalogModel):
    """Measurement unit as stored in the unit master table."""
    id: Text = Field(alias="_id")
    name: Text
    kind: str = "UNIT"


class NormalValueBand(CatalogModel):
    """One age/gender scoped reference range of a parameter."""
    id: Text = Field(default="", alias="_id")
    gender: Text = "Any"
    min_age: Text = Field(default="", alias="minAge", description="Bare number or packed range such as '1-10 Days'")
    max_age: Text = Field(default="", alias="maxAge")
    min_age_unit: Text = Field(default="", alias="minAgeUnit")
    max_age_unit: Text = Field(default="", alias="maxAgeUnit")
    age_unit: Text = Field(default="", alias="ageUnit")
    type: Text = "Numeric range"
    lower_value: Text = Field(default="", alias="lowerValue")
    upper_value: Text = Field(default="", alias="upperValue")
    text_value: Text = Field(default="", alias="textValue")
    display_in_report: Text = Field(default="", alias="displayInReport")
    remark: Text = ""

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.type != "Numeric range" or not self.lower_value or not self.upper_value:
            return self
        try:
            lower, upper = float(self.lower_value), float(self.upper_value)
        except ValueError:
            return self
        if lower > upper:
            raise ValueError(f"lowerValue {self.lower_value} is greater than upperValue {self.upper_value}")
        return self


class ParameterDefinition(CatalogModel):
    id: Text = Field(default="", alias="_id")
    name: Text
    unit: UnitField = None
    result_type: Text = Field(default="manual", alias="resultType")
    formula: Text = ""
    dropdown_options: Text = Field(default="", alias="dropdownOptions")
    default_result: Text = Field(default="", alias="defaultResult")
    group_by: Text = Field(default="", alias="groupBy")
    is_optional: bool = Field(default=False, alias="isOptional")
    removed: bool = False
    order: int | None = None
    normal_values: list[NormalValueBand] = Field(default_factory=list, alias="normalValues")


class TestReference(CatalogModel):
    """Entry of a panel's `tests` list: an id, optionally with the included test's name."""
    __test__ = False

    id: Text = Field(default="", alias="_id")
    name: Text = ""


def _coerce_named(value):
    if isinstance(value, dict):
        return value.get("name") or value.get("testName") or ""
    return value


class TestDefinition(CatalogModel):
    __test__ = False

    id: Text = Field(default="", alias="_id")
    name: Text
    short_name: Annotated[Text, BeforeValidator(_coerce_named)] = Field(default="", alias="shortName")
    category: Annotated[Text, BeforeValidator(_coerce_named)] = ""
    test_type: Text = Field(default="single", alias="testType")
    parameters: list[ParameterDefinition] = Field(default_factory=list)
    tests: list[TestReference] = Field(default_factory=list)

    # Root level fields of a single test that is mapped as one parameter.
    unit: UnitField = None
    result_type: Text = Field(default="manual", alias="resultType")
    formula: Text = ""
    dropdown_options: Text = Field(default="", alias="dropdownOptions")
    default_result: Text = Field(default="", alias="defaultResult")
    group_by: Text = Field(default="", alias="groupBy")
    is_optional: bool = Field(default=False, alias="isOptional")
    removed: bool = False
    order: int | None = None
    normal_values: list[NormalValueBand] = Field(default_factory=list, alias="normalValues")

    @field_validator("tests", mode="before")
    @classmethod
    def _coerce_tests(cls, value):
        if value is None:
            return []
        return [{"_id": item} if isinstance(item, str) else item for item in value]


class Catalog(CatalogModel):
    tests: list[TestDefinition] = Field(default_factory=list)
    units: list[UnitRecord] = Field(default_factory=list)
