# unixls/main.py - FastAPI application serving directory listings

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status

from .api import ls
from .core.node import LOG_LEVEL, build_node

# --- Logging Setup ---
logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# --- Lifespan Context Manager ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    # Tests may attach their own node before startup
    created = False
    if getattr(app.state, "node", None) is None:
        app.state.node = build_node()
        created = True
    yield
    logger.info("Application shutdown...")
    if created:
        app.state.node.close()
        app.state.node = None


# --- FastAPI App Initialization ---
app = FastAPI(
    title="UnixFS Listing Service",
    description="API to list directory contents of UnixFS objects in a content-addressed block store.",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(ls.router)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """Reports the blockstore kind and whether a remote gateway is configured."""
    node = getattr(request.app.state, "node", None)
    if node is None:
        return {"status": "starting", "blockstore": "none", "gateway": "none"}
    return {
        "status": "ok",
        "blockstore": node.blockstore.kind,
        "gateway": node.gateway_url or "none",
    }


# --- Main execution block ---
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Uvicorn server directly...")
    uvicorn.run("unixls.main:app", host="0.0.0.0", port=8000, reload=True)
