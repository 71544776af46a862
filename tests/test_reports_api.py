from pathology_engine.main import app
from pathology_engine.routers.deps import get_catalog
from pathology_engine.services.catalog import load_catalog


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "pathology-report-engine"


def test_resolve_liver_panel(client):
    response = client.post(
        "/api/reports/resolve",
        json={
            "patient": {"ageValue": 35, "ageUnit": "Years", "gender": "Male"},
            "tests": ["Liver Function Test", {"name": "X-Ray Chest PA View"}, "Vitamin Z Assay"],
            "results": {"Liver Function Test": {"Albumin": "4.0", "Total Protein": "7.0", "Sodium": "140"}},
        },
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["statusCode"] == 200
    data = payload["data"]
    assert data["patient_days"] == 12775
    assert data["skipped_tests"] == ["X-Ray Chest PA View"]
    assert data["unmatched_tests"] == ["Vitamin Z Assay"]
    assert data["missing_results"] == ["Liver Function Test / Sodium"]

    lft = data["tests"][0]
    assert lft["test_name"] == "Liver Function Test"
    assert lft["has_results"] is True
    rows = {row["name"]: row for row in lft["parameters"]}
    assert rows["A:G Ratio"]["result"] == "1.33"
    assert rows["A:G Ratio"]["status"] == "normal"
    assert rows["A:G Ratio"]["indicator"] == "✓"
    assert rows["Albumin"]["normal_range"] == "3.5-5.0"
    assert rows["Albumin"]["outer_group"] == "PROTEIN PANEL"
    assert "all_normal_values" not in rows["Albumin"]
    assert [row["name"] for row in data["tests"][1]["parameters"]] == ["Vitamin Z Assay"]


def test_resolve_uses_overridden_catalog(client):
    app.dependency_overrides[get_catalog] = lambda: load_catalog([{"name": "ONLY TEST", "normalValues": [{"lowerValue": "1", "upperValue": "2"}]}])
    response = client.post("/api/reports/resolve", json={"tests": ["only test"], "results": {"only test": {"ONLY TEST": "3"}}})
    assert response.status_code == 200
    row = response.json()["data"]["tests"][0]["parameters"][0]
    assert row["status"] == "high"
    assert row["indicator"] == "↑"


def test_resolve_validation_envelope(client):
    response = client.post("/api/reports/resolve", json={"patient": {"ageValue": -1}, "tests": ["CBC"]})
    assert response.status_code == 422
    payload = response.json()
    assert payload["statusCode"] == 422
    assert payload["error"] == "ValidationError"
    assert payload["details"]["errors"]


def test_catalog_lookup(client):
    response = client.get("/api/catalog/lookup", params={"name": "lft"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "LIVER FUNCTION TEST"
    assert data["category"] == "BIOCHEMISTRY"
    assert data["test_type"] == "panel"
    assert data["included_tests"][0] == "PROTEIN PANEL"


def test_catalog_lookup_not_found(client):
    response = client.get("/api/catalog/lookup", params={"name": "Vitamin Z Assay"})
    assert response.status_code == 404
    payload = response.json()
    assert payload["statusCode"] == 404
    assert payload["error"] == "NotFound"


def test_root_summarizes_the_catalog(client, catalog):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["catalog"]["tests"] == len(catalog.tests)
    assert data["catalog"]["panels"] == 1
    assert "/api/reports/resolve" in data["endpoints"]


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.json() == {"statusCode": 404, "message": "Not Found", "error": "NotFound"}


def test_wrong_method_names_the_error(client):
    response = client.get("/api/reports/resolve")
    assert response.status_code == 405
    assert response.json()["error"] == "MethodNotAllowed"
