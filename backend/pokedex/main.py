import logging
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from .routers import health, catalog, pages
from .config import get_setting
from .services.list_processor import use_system_collation
from .store import get_catalog
from .views import STATIC_DIR

app = FastAPI(title="Pokédex")
logger = logging.getLogger("uvicorn.error")

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
app.include_router(pages.router, tags=["pages"])


# Warm the catalog from a snapshot on startup; a live fetch waits for the first request
@app.on_event("startup")
async def on_startup():
	use_system_collation()
	if not get_setting("CATALOG_SNAPSHOT"):
		logger.info("No catalog snapshot configured; catalog will be fetched on first request")
		return
	try:
		entries = await get_catalog()
		logger.info("Catalog ready: %d Pokemon", len(entries))
	except (OSError, ValueError) as e:
		logger.warning("Loading catalog snapshot failed: %s", e)


if __name__ == "__main__":
	import uvicorn
	uvicorn.run(app, host="0.0.0.0", port=8000)
