"""Working state of one report while it is being edited.

A session owns its rows exclusively. Every edit goes through ``set_result`` or
``select_option``; each one re-grades the row, invalidates formulas that read
it and re-runs the formula pass. The pass can edit rows itself, so it is
guarded by a per-session flag instead of module state.
"""

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from pathology_engine.schemas.catalog import Catalog
from pathology_engine.schemas.report import (
    PatientContext,
    ReceiptTestItem,
    ResolvedParameter,
    ResolvedTest,
    ResultStatus,
)
from pathology_engine.services import formula
from pathology_engine.services.age_units import patient_age_in_days
from pathology_engine.services.catalog import (
    find_test_definition,
    is_non_pathology,
    normalize_test_name,
    resolve_test_category,
)
from pathology_engine.services.panel_expander import get_test_parameters
from pathology_engine.services.reference_ranges import apply_band, choose_normal_value
from pathology_engine.services.status import classify

logger = logging.getLogger(__name__)


class ReportSession:
    def __init__(self, catalog: Catalog, patient: PatientContext | None = None, max_iterations: int | None = None):
        self.catalog = catalog
        self.patient = patient or PatientContext()
        self.max_iterations = max_iterations
        self.tests: list[ResolvedTest] = []
        self.skipped_tests: list[str] = []
        self.unmatched_tests: list[str] = []
        self._applying_formulas = False

    @property
    def patient_days(self) -> int:
        return patient_age_in_days(self.patient)

    @property
    def applying_formulas(self) -> bool:
        return self._applying_formulas

    def load_tests(self, items: Iterable[ReceiptTestItem | str]) -> list[ResolvedTest]:
        """Replace the session's rows with freshly assembled ones for ``items``."""
        self.tests = []
        self.skipped_tests = []
        self.unmatched_tests = []
        for item in items:
            if isinstance(item, str):
                item = ReceiptTestItem(name=item)
            if is_non_pathology(self.catalog, item.name, item.category):
                logger.info("Skipping non-pathology item %r", item.name)
                self.skipped_tests.append(item.name)
                continue
            if find_test_definition(self.catalog, item.name) is None:
                self.unmatched_tests.append(item.name)
            self.tests.append(
                ResolvedTest(
                    test_name=item.name,
                    category=resolve_test_category(self.catalog, item.name, item.category),
                    parameters=get_test_parameters(self.catalog, item.name, self.patient_days, self.patient.gender),
                )
            )
        for test in self.tests:
            for param in test.parameters:
                param.status = classify(param)
            self.apply_formulas(test)
        return self.tests

    def snapshot(self) -> list[ResolvedTest]:
        return [test.model_copy(deep=True) for test in self.tests]

    def test_of(self, param: ResolvedParameter) -> ResolvedTest | None:
        for test in self.tests:
            if any(p is param for p in test.parameters):
                return test
        return None

    def find_parameter(self, test_name: str, param_name: str) -> ResolvedParameter | None:
        wanted_test = normalize_test_name(test_name)
        wanted_keys = set(formula.name_keys(param_name))
        for test in self.tests:
            if normalize_test_name(test.test_name) != wanted_test:
                continue
            for param in test.parameters:
                if wanted_keys & set(formula.name_keys(param.name)):
                    return param
        return None

    @contextmanager
    def _formula_pass(self) -> Iterator[None]:
        self._applying_formulas = True
        try:
            yield
        finally:
            self._applying_formulas = False

    def apply_formulas(self, test: ResolvedTest) -> int:
        """Run the formula pass over one test; a nested call while running is a no-op."""
        if self._applying_formulas:
            return 0
        with self._formula_pass():
            return formula.apply_formulas(test.parameters, on_result=self.check_status, max_iterations=self.max_iterations)

    def _invalidate_and_recompute(self, param: ResolvedParameter) -> None:
        test = self.test_of(param)
        if test is None:
            return
        if param.result_type.lower() != formula.FORMULA:
            formula.clear_dependent_formulas(test.parameters, param)
        if not self._applying_formulas:
            self.apply_formulas(test)

    def check_status(self, param: ResolvedParameter) -> ResultStatus:
        param.status = classify(param)
        if not self._applying_formulas:
            self._invalidate_and_recompute(param)
        return param.status

    def set_result(self, param: ResolvedParameter, value: str | None) -> ResultStatus:
        """Edit event for a manual row."""
        param.result = "" if value is None else str(value)
        return self.check_status(param)

    def select_option(self, param: ResolvedParameter, option_id: str | None) -> ResultStatus:
        """Edit event for a dropdown row: store the option and show its label."""
        param.selected_option_id = option_id
        selected = next((o for o in param.options if o.id == option_id), None)
        param.result = selected.label if selected else ""
        return self.check_status(param)

    def apply_entered_result(self, param: ResolvedParameter, value: str) -> ResultStatus:
        if param.options:
            wanted = str(value).strip().lower()
            option = next((o for o in param.options if o.id == value or o.label.lower() == wanted), None)
            if option is not None:
                return self.select_option(param, option.id)
        return self.set_result(param, value)

    def apply_results(self, results: dict[str, dict[str, str]]) -> list[str]:
        """Apply entered values keyed by test and parameter name; return the keys that matched nothing."""
        missing = []
        for test_name, values in results.items():
            for param_name, value in values.items():
                param = self.find_parameter(test_name, param_name)
                if param is None:
                    missing.append(f"{test_name} / {param_name}")
                    continue
                self.apply_entered_result(param, value)
        return missing

    def update_patient(self, patient: PatientContext) -> None:
        self.patient = patient
        self.refresh_normal_values()

    def refresh_normal_values(self) -> None:
        """Re-pick every row's reference range for the current patient, keeping the rows."""
        days = self.patient_days
        for test in self.tests:
            for param in test.parameters:
                if not param.all_normal_values:
                    continue
                band = choose_normal_value(param.all_normal_values, days, self.patient.gender)
                if band is not None:
                    apply_band(param, band)
                    self.check_status(param)


def has_filled_value(param: ResolvedParameter) -> bool:
    selected = param.selected_option_id is not None and str(param.selected_option_id).strip() != ""
    return bool(param.result.strip()) or bool(param.text_value.strip()) or selected


def has_any_result(param: ResolvedParameter) -> bool:
    return not param.exclude_from_print and has_filled_value(param)


def has_any_result_in_test(test: ResolvedTest) -> bool:
    if test.exclude_from_print:
        return False
    for param in test.parameters:
        if has_any_result(param):
            return True
        if param.normal_remark.strip() and not param.exclude_from_print:
            return True
    return False


def toggle_test_exclusion(test: ResolvedTest) -> None:
    for param in test.parameters:
        param.exclude_from_print = test.exclude_from_print


def sync_test_exclusion(test: ResolvedTest) -> None:
    test.exclude_from_print = bool(test.parameters) and all(p.exclude_from_print for p in test.parameters)
