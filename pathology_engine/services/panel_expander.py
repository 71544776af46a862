import logging

from pathology_engine.schemas.catalog import Catalog, ParameterDefinition, TestDefinition, unit_display_name
from pathology_engine.schemas.report import DropdownOption, ResolvedParameter
from pathology_engine.services.catalog import find_included_test, find_test_definition
from pathology_engine.services.grouping import reorder_parameters_by_group
from pathology_engine.services.reference_ranges import apply_band, choose_normal_value

logger = logging.getLogger(__name__)

PANEL = "panel"


def build_options(definition: ParameterDefinition | TestDefinition) -> list[DropdownOption]:
    if (definition.result_type or "").lower() != "dropdown":
        return []
    if definition.dropdown_options:
        labels = [label.strip() for label in definition.dropdown_options.split(",")]
        return [DropdownOption(id=label, label=label) for label in labels if label]
    options = []
    for band in definition.normal_values:
        label = (
            band.display_in_report
            or band.text_value
            or "-".join(value for value in (band.lower_value, band.upper_value) if value)
        )
        options.append(DropdownOption(id=band.id, label=label))
    return options


def map_parameter(
    definition: ParameterDefinition | TestDefinition,
    patient_days: int,
    gender: str,
    outer_group: str = "",
    no_group_by_fallback: bool = False,
    order: int | None = None,
) -> ResolvedParameter:
    """Build the working row for one parameter (or a parameterless test)."""
    result_type = definition.result_type or "manual"
    is_formula = result_type.lower() == "formula"
    options = build_options(definition)

    result = ""
    selected_option_id = None
    default = definition.default_result
    if options:
        if default:
            option = next((o for o in options if o.id == default), None) or next(
                (o for o in options if o.label.lower() == default.lower()), None
            )
            if option is not None:
                result = option.label
                selected_option_id = option.id
    elif default and not is_formula:
        result = default

    if definition.group_by.strip():
        group_by = definition.group_by
    else:
        group_by = "" if no_group_by_fallback else outer_group

    param = ResolvedParameter(
        name=definition.name,
        parameter_id=definition.id or None,
        unit=unit_display_name(definition.unit),
        group_by=group_by,
        outer_group=outer_group,
        result_type=result_type,
        order=order if order is not None else (definition.order or 0),
        is_optional=definition.is_optional,
        removed=definition.removed,
        options=options,
        selected_option_id=selected_option_id,
        all_normal_values=list(definition.normal_values),
        formula_expr=definition.formula if is_formula else "",
        result=result,
    )
    if definition.normal_values:
        band = choose_normal_value(definition.normal_values, patient_days, gender)
        apply_band(param, band or definition.normal_values[0])
    return param


def _active_parameters(test: TestDefinition) -> list[ParameterDefinition]:
    return sorted((p for p in test.parameters if not p.removed), key=lambda p: p.order or 0)


def _expand_panel(catalog: Catalog, panel: TestDefinition, patient_days: int, gender: str) -> list[ResolvedParameter]:
    included: list[ResolvedParameter] = []
    for reference in panel.tests:
        definition = find_included_test(catalog, reference)
        if definition is None:
            logger.warning("Panel %r includes unknown test %r", panel.name, reference.id or reference.name)
            continue
        if definition.parameters:
            for idx, param in enumerate(_active_parameters(definition)):
                included.append(
                    map_parameter(
                        param,
                        patient_days,
                        gender,
                        outer_group=definition.name,
                        no_group_by_fallback=True,
                        order=param.order if param.order is not None else idx,
                    )
                )
        else:
            included.append(
                map_parameter(definition, patient_days, gender, outer_group=definition.name, no_group_by_fallback=True)
            )
    return included


def expand_test(catalog: Catalog, test: TestDefinition, patient_days: int, gender: str) -> list[ResolvedParameter]:
    """Flatten a test definition into working rows, before display regrouping."""
    if test.test_type == PANEL and test.tests:
        included = _expand_panel(catalog, test, patient_days, gender)
        if included:
            return included
    if test.parameters:
        return [map_parameter(param, patient_days, gender) for param in _active_parameters(test)]
    return [map_parameter(test, patient_days, gender)]


def get_test_parameters(catalog: Catalog, test_name: str, patient_days: int, gender: str) -> list[ResolvedParameter]:
    definition = find_test_definition(catalog, test_name)
    if definition is None:
        logger.warning("No definition found for test %r; using a single blank row", test_name)
        return [ResolvedParameter(name=test_name)]
    return reorder_parameters_by_group(expand_test(catalog, definition, patient_days, gender))
