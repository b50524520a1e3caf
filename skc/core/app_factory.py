from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.audit_event_service import AuditEventService
from ..application.services.authentication_service import AuthenticationService
from ..application.services.token_provider import TokenProvider
from ..application.services.user_details_service import UserDetailsService
from ..application.services.user_service import UserService
from ..infrastructure.cache.user_cache import UserLookupCache
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..infrastructure.security.password_hasher import PasswordHasher
from ..presentation.api.errors import register_exception_handlers
from ..presentation.api.routers import account as account_router
from ..presentation.api.routers import audits as audits_router
from ..presentation.api.routers import user_jwt as user_jwt_router
from ..presentation.api.routers import users as users_router
from ..services.mail_service import MailService
from ..services.purge_scheduler import StaleAccountPurger

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="SKC Accounts", lifespan=_create_lifespan(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization", "Link", "X-Total-Count", "X-skcApp-alert", "X-skcApp-params"],
    )
    register_exception_handlers(app)

    app.include_router(account_router.router)
    app.include_router(user_jwt_router.router)
    app.include_router(users_router.router)
    app.include_router(audits_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        container: ApplicationContainer = app.state.container  # type: ignore[attr-defined]
        return {"ok": True, "purge_scheduler": container.purger.running}

    return app


def build_container(settings: Settings) -> ApplicationContainer:
    """Assemble every component from settings; nothing is started here."""
    persistence = SQLitePersistence(settings.database_path)
    user_cache = UserLookupCache(persistence, ttl_seconds=settings.user_cache_ttl_seconds)
    password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    mail_service = MailService(
        base_url=settings.mail_base_url,
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_username=settings.smtp_username,
        smtp_password=settings.smtp_password,
        from_email=settings.smtp_from_email,
    )
    token_provider = TokenProvider(
        token_validity_seconds=settings.token_validity_seconds,
        token_validity_seconds_for_remember_me=settings.token_validity_seconds_for_remember_me,
        secret=settings.jwt_secret,
        base64_secret=settings.jwt_base64_secret,
    )
    user_service = UserService(
        persistence,
        user_cache,
        password_hasher,
        mail_service,
        default_language=settings.default_language,
        reset_key_validity=timedelta(hours=settings.reset_key_validity_hours),
        unactivated_retention=timedelta(days=settings.unactivated_retention_days),
    )
    user_details_service = UserDetailsService(user_cache)
    audit_event_service = AuditEventService(persistence)
    authentication_service = AuthenticationService(
        user_details_service, password_hasher, token_provider, audit_event_service
    )
    purger = StaleAccountPurger(user_service, hour_utc=settings.purge_hour_utc)
    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        user_cache=user_cache,
        password_hasher=password_hasher,
        mail_service=mail_service,
        token_provider=token_provider,
        user_service=user_service,
        user_details_service=user_details_service,
        audit_event_service=audit_event_service,
        authentication_service=authentication_service,
        purger=purger,
    )


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        container = build_container(settings)
        container.user_service.ensure_default_admin(
            settings.admin_default_login,
            settings.admin_default_email,
            settings.admin_default_password,
        )

        app.state.container = container  # type: ignore[attr-defined]

        await container.purger.start()
        try:
            yield
        finally:
            await container.purger.stop()
            container.user_cache.clear()
            container.persistence.close()

    return lifespan
