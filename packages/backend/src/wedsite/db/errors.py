"""Translate database driver failures into the app error taxonomy."""

from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError

from wedsite.errors import InternalError

logger = structlog.get_logger()


@asynccontextmanager
async def translate_db_errors(operation: str):
    """Re-raise any SQLAlchemyError as an InternalError (500).

    Use around reads in the auth core, where a database failure must deny
    the request rather than leak a driver exception.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("db.operation_failed", operation=operation, error=str(e))
        raise InternalError("Internal server error") from e
