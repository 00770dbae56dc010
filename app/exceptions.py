# app/exceptions.py - Domain errors and the handlers that turn them into responses

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError, DatabaseError


class TldrError(Exception):
    """Base class for everything a TL;DR run or the host store can raise."""


class SummarizerError(TldrError):
    """The summary service could not be reached or answered with garbage."""


class WriteFailure(TldrError):
    """The host refused a batch of record updates."""


class RunInProgressError(TldrError):
    def __init__(self):
        super().__init__("A TL;DR run is already in progress")


class UnknownTableError(TldrError, LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No table named {name!r}")


class UnknownFieldError(TldrError, LookupError):
    def __init__(self, table: str, field: str):
        self.table = table
        self.field = field
        super().__init__(f"No field named {field!r} in table {table!r}")


class DatabaseExceptionHandler:
    """Centralized database exception handling."""
    @staticmethod
    async def integrity_error_handler(
        request: Request,
        exc: IntegrityError,
    ) -> JSONResponse:
        """Handle database integrity constraint violations."""
        error_msg = str(exc.orig)
        if "UNIQUE constraint failed" in error_msg:
            if "host_tables.name" in error_msg:
                return JSONResponse(
                    status_code=409,
                    content={"detail": "A table with this name already exists"}
                )
            return JSONResponse(
                status_code=409,
                content={"detail": "This record already exists"}
            )
        elif "FOREIGN KEY constraint failed" in error_msg:
            return JSONResponse(
                status_code=400,
                content={"detail": "Referenced record does not exist"}
            )
        return JSONResponse(
            status_code=400,
            content={"detail": "Data validation error"}
        )

    @staticmethod
    async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
        """Handle general database errors."""
        logger.opt(exception=exc).error("Database operation failed on {}", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Database operation failed"}
        )


class TldrExceptionHandler:
    """Maps pipeline and host errors onto HTTP responses."""
    @staticmethod
    async def summarizer_error_handler(request: Request, exc: SummarizerError) -> JSONResponse:
        logger.error("Summary service failure: {}", exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @staticmethod
    async def write_failure_handler(request: Request, exc: WriteFailure) -> JSONResponse:
        logger.error("Record update failed: {}", exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @staticmethod
    async def run_in_progress_handler(request: Request, exc: RunInProgressError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @staticmethod
    async def unknown_table_handler(request: Request, exc: UnknownTableError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @staticmethod
    async def unknown_field_handler(request: Request, exc: UnknownFieldError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})
