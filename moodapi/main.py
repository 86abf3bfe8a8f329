"""
FastAPI application entrypoint.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from moodapi.routes import router, shutdown_session

logging.basicConfig(level=logging.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # camera and classifier must not outlive the server
    await shutdown_session()


app = FastAPI(title="Emotion Detection Session API", version="1.0.0", lifespan=lifespan)
app.include_router(router)

@app.get("/health")
def health() -> dict:
    """
    Health check endpoint.

    Returns:
        dict: Simple status payload.
    """
    return {"status": "ok"}
