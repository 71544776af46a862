from functools import lru_cache

from pathology_engine.schemas.catalog import Catalog
from pathology_engine.seed.catalog_seed import load_seed_catalog


@lru_cache(maxsize=1)
def _seed_catalog() -> Catalog:
    return load_seed_catalog()


def get_catalog() -> Catalog:
    return _seed_catalog()
