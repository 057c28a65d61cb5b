from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from pharmacy.core.exceptions import (
    BaseCustomException, ValidationError, DatabaseError, create_error_response
)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BaseCustomException)
    async def domain_exception_handler(request: Request, exc: BaseCustomException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(create_error_response(exc, request.headers.get("x-request-id"))),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError("Request validation failed", details={"errors": [
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()
        ]})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder(create_error_response(error, request.headers.get("x-request-id"))),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        error = DatabaseError("Internal server error", error_code="INTERNAL_ERROR")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=jsonable_encoder(create_error_response(error, request.headers.get("x-request-id"))),
        )
