import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from pitchlink.core.config import STORAGE_BACKEND, UPLOAD_DIR, UPLOAD_URL_PREFIX
from pitchlink.core.errors import PitchlinkError
from pitchlink.core.logging import setup_logging
from pitchlink.core.init_db import init_db
from pitchlink.api.router import api_router

setup_logging()
logger.info("Starting PitchLink backend")


app = FastAPI(
    title="PitchLink Backend",
    version="0.1.0"
)

if STORAGE_BACKEND == "local":
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=UPLOAD_DIR), name="uploads")

# All API routes (connections, blocks, requests, conversations, messages, ws)
app.include_router(api_router)


@app.exception_handler(PitchlinkError)
async def pitchlink_error_handler(request: Request, exc: PitchlinkError):
    logger.warning(f"{type(exc).__name__} | {request.method} {request.url.path} | {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Init DB after app is created
init_db()

@app.get("/health")
def health():
    logger.debug("Health check hit")
    return {"status": "ok"}
