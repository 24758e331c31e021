import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from proofpass.config import Settings, settings as default_settings
from proofpass.errors import Internal, ProofPassError
from proofpass.issuer import CredentialIssuer, build_issuer
from proofpass.logging_setup import setup_logging
from proofpass.repository import Repository, build_repository
from proofpass.routers import auth, events, organizer, student, verify
from proofpass.services.claims import ClaimEngine
from proofpass.services.lifecycle import EventLifecycle

logger = logging.getLogger(__name__)


async def proofpass_error_handler(request: Request, exc: ProofPassError) -> JSONResponse:
    if isinstance(exc, Internal):
        # the collaborator detail stays in the logs
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: ValidationError | RequestValidationError) -> JSONResponse:
    # the rejected input is left out, a NaN in it cannot be rendered as JSON
    errors = [
        {key: value for key, value in error.items() if key not in ("input", "ctx", "url")} for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"message": "Invalid input", "reason": "validation_error", "errors": jsonable_encoder(errors)},
    )


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[Repository] = None,
    issuer: Optional[CredentialIssuer] = None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    repository = repository or build_repository(settings)
    issuer = issuer or build_issuer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.issuer.close()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.repository = repository
    app.state.issuer = issuer
    app.state.lifecycle = EventLifecycle(
        repository,
        issuer,
        default_status=settings.DEFAULT_ATTENDANCE_STATUS,
        clear_started_on_close=settings.CLEAR_ATTENDANCE_STARTED_ON_CLOSE,
        provision_collections=settings.PROVISION_COLLECTIONS,
        badge_image_size=settings.BADGE_IMAGE_SIZE,
    )
    app.state.claim_engine = ClaimEngine(repository, issuer)

    app.add_exception_handler(ProofPassError, proofpass_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    for module in (auth, organizer, events, student, verify):
        app.include_router(module.router, prefix="/api")

    @app.get("/")
    def root():
        return {"app": settings.APP_NAME, "status": "ok"}

    logger.info(
        "%s started (storage=%s, issuer=%s)", settings.APP_NAME, type(repository).__name__, type(issuer).__name__
    )
    return app


app = create_app()
