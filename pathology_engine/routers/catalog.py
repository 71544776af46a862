from fastapi import APIRouter, Depends, HTTPException, Query

from pathology_engine.routers.deps import get_catalog
from pathology_engine.schemas.catalog import Catalog, unit_display_name
from pathology_engine.services.catalog import find_test_definition, resolve_test_category

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get("/lookup")
def lookup_test(name: str = Query(..., min_length=1), catalog: Catalog = Depends(get_catalog)):
    definition = find_test_definition(catalog, name)
    if definition is None:
        raise HTTPException(status_code=404, detail=f"No test definition matches {name!r}")
    return {
        "statusCode": 200,
        "message": "Success",
        "data": {
            "id": definition.id,
            "name": definition.name,
            "short_name": definition.short_name,
            "category": resolve_test_category(catalog, definition.name, definition.category),
            "test_type": definition.test_type,
            "unit": unit_display_name(definition.unit),
            "parameters": [param.name for param in definition.parameters if not param.removed],
            "included_tests": [ref.name or ref.id for ref in definition.tests],
        },
    }
