import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from dmstore.database.connection import MongoConnection, mongo_db_dependency
from dmstore.repositories.message_repository import MessageRepository
from dmstore.routers.messages import router as messages_router
from dmstore.utils.errors import StorageError, ValidationError


logger = logging.getLogger(__name__)


def _request_error_field(loc) -> str:
    names = [part for part in loc if isinstance(part, str) and part not in ("body", "query", "path")]
    return names[-1] if names else "body"


def create_app(mongo: Optional[MongoConnection] = None) -> FastAPI:
    mongo = mongo or MongoConnection.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):

        await mongo.connect()
        try:
            await MessageRepository(mongo.db, timeout=mongo.timeout).ensure_indexes()
            yield
        finally:
            await mongo.close()

    app = FastAPI(title="Direct message store", lifespan=lifespan)
    app.state.mongo = mongo

    app.include_router(messages_router)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": exc.message, "errors": exc.errors},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        errors = {}
        for err in exc.errors():
            errors.setdefault(_request_error_field(err.get("loc", ())), err.get("msg", "Invalid value"))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": exc.message, "error": exc.detail or exc.message},
        )

    @app.get("/")
    async def root(db=Depends(mongo_db_dependency)):

        try:
            collections = await db.list_collection_names()
        except PyMongoError as exc:
            raise StorageError("Listing collections failed", str(exc)) from exc
        return {"message": "Connected to MongoDB!", "collections": collections}

    return app


app = create_app()
