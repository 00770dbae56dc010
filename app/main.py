# app/main.py

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, DatabaseError

from app.config import pipeline_config
from app.db import SessionLocal, init_models, enable_sqlite_wal
from app.exceptions import (
    DatabaseExceptionHandler,
    RunInProgressError,
    SummarizerError,
    TldrExceptionHandler,
    UnknownFieldError,
    UnknownTableError,
    WriteFailure,
)
from app.routers import config, tables, tldr
from app.services.records import ensure_table
from app.settings import settings_cache


VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await enable_sqlite_wal()
    await init_models()
    await settings_cache.load()
    async with SessionLocal() as db:
        await ensure_table(
            db,
            pipeline_config.table_name,
            [pipeline_config.source_field, pipeline_config.destination_field],
        )
    yield


app = FastAPI(
    title="TL;DR API",
    version=VERSION,
    lifespan=lifespan,
)

# Register exception handlers
app.add_exception_handler(IntegrityError, DatabaseExceptionHandler.integrity_error_handler)     # type: ignore
app.add_exception_handler(DatabaseError, DatabaseExceptionHandler.database_error_handler)       # type: ignore
app.add_exception_handler(SummarizerError, TldrExceptionHandler.summarizer_error_handler)       # type: ignore
app.add_exception_handler(WriteFailure, TldrExceptionHandler.write_failure_handler)             # type: ignore
app.add_exception_handler(RunInProgressError, TldrExceptionHandler.run_in_progress_handler)     # type: ignore
app.add_exception_handler(UnknownTableError, TldrExceptionHandler.unknown_table_handler)        # type: ignore
app.add_exception_handler(UnknownFieldError, TldrExceptionHandler.unknown_field_handler)        # type: ignore

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # the settings form may be served from anywhere
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Routers
app.include_router(tables.router, prefix="/api/tables", tags=["tables"])
app.include_router(tldr.router, prefix="/api/tldr", tags=["tldr"])
app.include_router(config.router, prefix="/api/config", tags=["config"])


@app.get("/")
async def hello():
    return {"msg": "TL;DR: summaries for every URL in your table"}


@app.get("/healthz")
async def healthz():
    return {"ok": True, "version": VERSION}
