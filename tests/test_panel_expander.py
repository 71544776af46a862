from pathology_engine.schemas.catalog import ParameterDefinition, TestDefinition
from pathology_engine.services.catalog import load_catalog
from pathology_engine.services.panel_expander import build_options, expand_test, get_test_parameters, map_parameter

ADULT_DAYS = 35 * 365


def test_liver_panel_keeps_included_tests_in_catalog_order(catalog):
    params = get_test_parameters(catalog, "Liver Function Test", ADULT_DAYS, "Male")
    assert [(p.outer_group, p.name) for p in params] == [
        ("PROTEIN PANEL", "Albumin"),
        ("PROTEIN PANEL", "Total Protein"),
        ("PROTEIN PANEL", "Globulin"),
        ("PROTEIN PANEL", "A:G Ratio"),
        ("ENZYME PANEL", "SGOT (AST)"),
        ("ENZYME PANEL", "SGPT (ALT)"),
        ("SERUM BILIRUBIN", "SERUM BILIRUBIN"),
    ]


def test_panel_rows_get_no_synthetic_group_heading(catalog):
    params = get_test_parameters(catalog, "LFT", ADULT_DAYS, "Male")
    assert all(p.group_by == "" for p in params)


def test_removed_parameters_are_dropped(catalog):
    names = [p.name for p in get_test_parameters(catalog, "LFT", ADULT_DAYS, "Male")]
    assert "Alkaline Phosphatase" not in names


def test_gender_specific_enzyme_range(catalog):
    male = {p.name: p.normal_range for p in get_test_parameters(catalog, "LFT", ADULT_DAYS, "Male")}
    female = {p.name: p.normal_range for p in get_test_parameters(catalog, "LFT", ADULT_DAYS, "Female")}
    assert male["SGOT (AST)"] == "0-40"
    assert female["SGOT (AST)"] == "0-32"


def test_units_are_resolved_to_display_names(catalog):
    params = {p.name: p for p in get_test_parameters(catalog, "LFT", ADULT_DAYS, "Male")}
    assert params["Albumin"].unit == "g/dL"
    assert params["A:G Ratio"].unit == "ratio"
    assert params["SERUM BILIRUBIN"].unit == "mg/dL"


def test_formula_rows_carry_their_expression(catalog):
    params = {p.name: p for p in get_test_parameters(catalog, "LFT", ADULT_DAYS, "Male")}
    assert params["Globulin"].result_type == "formula"
    assert params["Globulin"].formula_expr == "{Total Protein} - {Albumin}"
    assert params["Albumin"].formula_expr == ""


def test_haemoglobin_range_follows_age(catalog):
    def hb(days, gender):
        params = get_test_parameters(catalog, "CBC", days, gender)
        return next(p for p in params if p.name == "Haemoglobin").normal_range

    assert hb(5, "Male") == "14.5-22.5"
    assert hb(30, "Female") == "10.0-14.0"
    assert hb(2 * 365, "Male") == "11.0-15.5"
    assert hb(ADULT_DAYS, "Male") == "13.5-18.0"
    assert hb(ADULT_DAYS, "Female") == "12.0-15.5"


def test_grouped_test_merges_label_variants(catalog):
    params = get_test_parameters(catalog, "Urine Routine", ADULT_DAYS, "Male")
    assert [(p.group_by, p.name) for p in params] == [
        ("Physical", "Colour"),
        ("Physical", "Appearance"),
        ("Chemical", "Reaction (pH)"),
        ("Chemical", "Urine Protein"),
        ("", "Pus Cells"),
    ]


def test_dropdown_default_is_preselected(catalog):
    params = {p.name: p for p in get_test_parameters(catalog, "Urine Routine", ADULT_DAYS, "Male")}
    colour = params["Colour"]
    assert [o.label for o in colour.options] == ["Pale Yellow", "Yellow", "Dark Yellow", "Red"]
    assert colour.result == "Pale Yellow"
    assert colour.selected_option_id == "Pale Yellow"


def test_single_test_becomes_one_row(catalog):
    params = get_test_parameters(catalog, "HIV I & II", ADULT_DAYS, "Male")
    assert len(params) == 1
    assert params[0].name == "HIV I & II"
    assert params[0].type == "Text"
    assert params[0].normal_range == "Non Reactive"


def test_unknown_test_yields_blank_row(catalog):
    params = get_test_parameters(catalog, "Vitamin Z Assay", ADULT_DAYS, "Male")
    assert len(params) == 1
    assert params[0].name == "Vitamin Z Assay"
    assert params[0].normal_range == ""


def test_panel_with_unknown_includes_falls_back_to_own_row():
    catalog = load_catalog([
        {"name": "ORPHAN PANEL", "testType": "panel", "tests": ["64b0c0a1e4b0a1b2c3d4ffff"], "unit": "mg/dL"},
    ])
    params = expand_test(catalog, catalog.tests[0], ADULT_DAYS, "Male")
    assert [p.name for p in params] == ["ORPHAN PANEL"]
    assert params[0].unit == "mg/dL"


def test_top_level_parameters_keep_explicit_group_only():
    test = TestDefinition(
        name="KFT",
        testType="multiple",
        parameters=[
            {"name": "Urea", "order": 2, "groupBy": "Renal"},
            {"name": "Creatinine", "order": 1},
        ],
    )
    params = expand_test(load_catalog([]), test, ADULT_DAYS, "Male")
    assert [(p.name, p.group_by) for p in params] == [("Creatinine", ""), ("Urea", "Renal")]


def test_outer_group_is_used_as_fallback_heading_outside_panels():
    definition = ParameterDefinition(name="Sodium")
    assert map_parameter(definition, ADULT_DAYS, "Male", outer_group="ELECTROLYTES").group_by == "ELECTROLYTES"
    assert map_parameter(definition, ADULT_DAYS, "Male", outer_group="ELECTROLYTES", no_group_by_fallback=True).group_by == ""


def test_manual_default_result_is_prefilled():
    definition = ParameterDefinition(name="Sample", defaultResult="Serum")
    assert map_parameter(definition, ADULT_DAYS, "Male").result == "Serum"


def test_formula_ignores_default_result():
    definition = ParameterDefinition(name="Globulin", resultType="formula", formula="{a}", defaultResult="1")
    assert map_parameter(definition, ADULT_DAYS, "Male").result == ""


def test_options_fall_back_to_bands():
    definition = ParameterDefinition(
        name="Grade",
        resultType="dropdown",
        normalValues=[
            {"_id": "b1", "type": "Text", "textValue": "Negative"},
            {"_id": "b2", "lowerValue": "1", "upperValue": "3"},
        ],
    )
    assert [(o.id, o.label) for o in build_options(definition)] == [("b1", "Negative"), ("b2", "1-3")]
