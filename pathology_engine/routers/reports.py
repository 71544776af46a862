import logging

from fastapi import APIRouter, Depends

from pathology_engine.routers.deps import get_catalog
from pathology_engine.schemas.catalog import Catalog
from pathology_engine.schemas.report import ResolveReportRequest, ResolvedTest
from pathology_engine.services.report_session import ReportSession, has_any_result_in_test
from pathology_engine.services.status import indicator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


def _serialize_test(test: ResolvedTest) -> dict:
    payload = test.model_dump(mode="json", exclude={"parameters"})
    payload["has_results"] = has_any_result_in_test(test)
    payload["parameters"] = []
    for param in test.parameters:
        row = param.model_dump(mode="json", exclude={"all_normal_values"})
        row["indicator"] = indicator(param.status)
        payload["parameters"].append(row)
    return payload


@router.post("/resolve")
def resolve_report(payload: ResolveReportRequest, catalog: Catalog = Depends(get_catalog)):
    session = ReportSession(catalog, payload.patient)
    session.load_tests(payload.tests)
    missing_results = session.apply_results(payload.results)
    if missing_results:
        logger.info("Ignored %d result(s) with no matching parameter", len(missing_results))

    tests = session.snapshot()
    return {
        "statusCode": 200,
        "message": "Report resolved successfully",
        "data": {
            "patient_days": session.patient_days,
            "total_tests": len(tests),
            "tests": [_serialize_test(test) for test in tests],
            "unmatched_tests": session.unmatched_tests,
            "skipped_tests": session.skipped_tests,
            "missing_results": missing_results,
        },
    }
