import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from deployhub.config import settings
from deployhub.core.exceptions import ClusterRequestError, DeployHubError, PartialCommitError

logger = logging.getLogger(__name__)


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    content = {"status": status_code, "code": code, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def deployhub_error_handler(request: Request, exc: DeployHubError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message)


async def cluster_request_error_handler(request: Request, exc: ClusterRequestError):
    logger.error(f"Erreur cluster sur {request.method} {request.url.path}: {exc.message}")
    # Les erreurs 4xx du cluster (ex: 409, 422) sont renvoyées telles quelles
    status_code = exc.upstream_status if exc.upstream_status and 400 <= exc.upstream_status < 500 else 502
    return error_response(status_code, exc.code, exc.message, upstream_status=exc.upstream_status)


async def partial_commit_error_handler(request: Request, exc: PartialCommitError):
    logger.critical(f"Commit partiel ({exc.code}) pour {exc.deployment_name}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, deployment_name=exc.deployment_name)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "status": 422,
            "code": "VALIDATION_ERROR",
            "message": "Invalid request",
            "errors": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def setup_middlewares(app: FastAPI):
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClusterRequestError, cluster_request_error_handler)
    app.add_exception_handler(PartialCommitError, partial_commit_error_handler)
    app.add_exception_handler(DeployHubError, deployhub_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
