import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from byok.app.api.v1.router import api_router
from byok.app.core.config import Settings, settings as default_settings
from byok.app.core.errors import ByokError
from byok.app.core.logging_config import configure_logging
from byok.app.db.session import create_engine, create_session_factory, create_tables
from byok.app.providers.base import AdapterRegistry
from byok.app.providers.google_veo import GoogleVeoAdapter
from byok.app.repositories.sql import SqlCredentialRepository, SqlJobRepository, SqlKeyStore
from byok.app.services.authorization import AllowListAuthorizer, ProviderAuthorizer
from byok.app.services.orchestrator import GenerationOrchestrator
from byok.app.services.vault import CredentialVault

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Settings] = None,
    adapters: Optional[AdapterRegistry] = None,
    authorizer: Optional[ProviderAuthorizer] = None,
) -> FastAPI:
    config = config or default_settings

    # --- LIFESPAN: storage, vault, orchestrator; resume unfinished jobs ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.LOG_LEVEL)

        engine = create_engine(config)
        await create_tables(engine)
        session_factory = create_session_factory(engine)

        registry = adapters or AdapterRegistry([GoogleVeoAdapter(config)])
        app.state.authorizer = authorizer or AllowListAuthorizer(config.enabled_providers)
        app.state.vault = CredentialVault(
            SqlCredentialRepository(session_factory),
            SqlKeyStore(session_factory),
            key_name=config.ENCRYPTION_KEY_NAME,
        )
        app.state.orchestrator = GenerationOrchestrator(
            app.state.vault,
            SqlJobRepository(session_factory),
            registry,
            app.state.authorizer,
            poll_interval=config.POLL_INTERVAL_SECONDS,
            max_poll_attempts=config.MAX_POLL_ATTEMPTS,
            max_prompt_length=config.MAX_PROMPT_LENGTH,
        )
        await app.state.orchestrator.resume()
        logger.info(f"{config.PROJECT_NAME} ready")

        yield

        await app.state.orchestrator.shutdown()
        await registry.aclose()
        await engine.dispose()

    app = FastAPI(
        title=config.PROJECT_NAME,
        version=config.PROJECT_VERSION,
        openapi_url=f"{config.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    app.state.config = config

    if config.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ByokError)
    async def byok_error_handler(request: Request, exc: ByokError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(api_router, prefix=config.API_V1_STR)

    @app.get("/")
    def root():
        return {"message": f"Welcome to {config.PROJECT_NAME} API", "docs": "/docs"}

    @app.get("/health")
    def health_check():
        return {"message": "healthy"}

    return app


app = create_app()
