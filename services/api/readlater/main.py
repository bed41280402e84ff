from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from readlater.api.router import api_router
from readlater.core.config import settings
from readlater.core.errors import InvalidBulkAction, InvalidSearchFilter, LibraryItemNotFound
from readlater.core.otel import init_otel
from readlater.db.session import engine
from readlater.middleware.request_id import RequestIdMiddleware

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.api_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

app.include_router(api_router)


@app.exception_handler(LibraryItemNotFound)
async def library_item_not_found_handler(request: Request, exc: LibraryItemNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidBulkAction)
@app.exception_handler(InvalidSearchFilter)
async def invalid_request_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


init_otel(app, engine)
