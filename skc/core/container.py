from dataclasses import dataclass

from ..application.services.audit_event_service import AuditEventService
from ..application.services.authentication_service import AuthenticationService
from ..application.services.token_provider import TokenProvider
from ..application.services.user_details_service import UserDetailsService
from ..application.services.user_service import UserService
from ..domain.ports.persistence import PersistenceGateway
from ..infrastructure.cache.user_cache import UserLookupCache
from ..infrastructure.security.password_hasher import PasswordHasher
from ..services.mail_service import MailService
from ..services.purge_scheduler import StaleAccountPurger
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    user_cache: UserLookupCache
    password_hasher: PasswordHasher
    mail_service: MailService
    token_provider: TokenProvider
    user_service: UserService
    user_details_service: UserDetailsService
    audit_event_service: AuditEventService
    authentication_service: AuthenticationService
    purger: StaleAccountPurger
