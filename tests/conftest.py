from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from pathology_engine.main import app
from pathology_engine.routers.deps import get_catalog
from pathology_engine.schemas.report import AgeUnit, PatientContext
from pathology_engine.seed.catalog_seed import load_seed_catalog


@pytest.fixture()
def catalog():
    return load_seed_catalog()


@pytest.fixture()
def male_adult() -> PatientContext:
    return PatientContext(age_value=35, age_unit=AgeUnit.YEARS, gender="Male")


@pytest.fixture()
def client(catalog) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_catalog] = lambda: catalog
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
