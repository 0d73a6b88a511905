from fastapi import APIRouter

from ..store import catalog_size

router = APIRouter()


@router.get("/")
def root():
    return {"status": "ok"}


@router.get("/catalog")
def catalog_health():
    # Reports what is in memory; never triggers a fetch
    size = catalog_size()
    if size is None:
        return {"status": "ok", "catalog": "not loaded"}
    return {"status": "ok", "catalog": "loaded", "entries": size}
