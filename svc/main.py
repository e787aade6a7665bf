from __future__ import annotations
from dotenv import load_dotenv
load_dotenv()  # Load .env file before importing app modules

import os
import time
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from sunlightmeter.config import CORS_ORIGINS, LOG_FILE, LOG_LEVEL
from sunlightmeter.routes import router
from sunlightmeter.service import MeterService, build_service
from sunlightmeter.state import initialize_database


def configure_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        # mirror everything we log into a file as well as stdout
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s: %(name)s: %(message)s',
        handlers=handlers,
    )
    logging.getLogger("sunlightmeter").setLevel(level)


configure_logging()
logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log each request and its response status and latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        process_time = time.time() - start_time
        log = logger.debug if request.method == "OPTIONS" else logger.info
        log(
            f"{request.method} {request.url.path} | "
            f"IP: {client_ip} | "
            f"Status: {response.status_code} | "
            f"Time: {process_time:.3f}s"
        )
        return response


def create_app(service: Optional[MeterService] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"SunlightMeter [{os.getpid()}]")
        initialize_database()
        svc = service or build_service()
        app.state.service = svc
        # listen for results from our jobs and record them in sqlite
        svc.start()
        try:
            yield
        finally:
            svc.shutdown()

    app = FastAPI(title="Sunlight Meter Service", version="0.1.0", lifespan=lifespan)

    # Request logging middleware (add first so it wraps everything)
    app.add_middleware(LoggingMiddleware)

    # CORS for dashboards served from elsewhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
