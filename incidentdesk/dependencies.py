"""FastAPI dependency injection providers."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import IncidentDeskConfig, get_config
from .database import get_session_factory
from .engine.account_service import AccountService
from .engine.incident_service import IncidentService
from .errors import Unauthenticated
from .storage import LocalAttachmentStorage
from .store import RecordStore, SqlRecordStore
from .utils.logging import get_logger
from .utils.rate_limiter import RateLimiter
from .utils.security import decode_access_token

_dep_logger = get_logger("dependencies")

security_scheme = HTTPBearer(auto_error=False)

_config_instance: IncidentDeskConfig | None = None
_record_store: RecordStore | None = None
_incident_service: IncidentService | None = None
_account_service: AccountService | None = None
_attachment_storage: LocalAttachmentStorage | None = None
_login_limiter: RateLimiter | None = None


def get_app_config() -> IncidentDeskConfig:
    """Get the application config singleton."""
    global _config_instance
    if _config_instance is None:
        _config_instance = get_config()
    return _config_instance


def get_record_store() -> RecordStore:
    """Get the record store singleton."""
    global _record_store
    if _record_store is None:
        _record_store = SqlRecordStore(get_session_factory(get_app_config()))
    return _record_store


def get_incident_service() -> IncidentService:
    global _incident_service
    if _incident_service is None:
        _incident_service = IncidentService(get_record_store())
    return _incident_service


def get_account_service() -> AccountService:
    global _account_service
    if _account_service is None:
        _account_service = AccountService(get_record_store(), default_role=get_app_config().default_role)
    return _account_service


def get_attachment_storage() -> LocalAttachmentStorage:
    global _attachment_storage
    if _attachment_storage is None:
        config = get_app_config()
        _attachment_storage = LocalAttachmentStorage(
            root=config.evidence_dir,
            public_base_url=config.evidence_public_base_url,
            max_bytes=config.evidence_max_bytes,
        )
    return _attachment_storage


def get_login_limiter() -> RateLimiter:
    global _login_limiter
    if _login_limiter is None:
        config = get_app_config()
        _login_limiter = RateLimiter(
            max_attempts=config.login_rate_limit_attempts,
            window_seconds=config.login_rate_limit_window,
        )
    return _login_limiter


async def current_account_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    config: IncidentDeskConfig = Depends(get_app_config),
) -> str:
    """Resolve the acting account from the bearer token.

    Raises Unauthenticated when the token is missing, invalid, expired or
    names an account that no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    payload = decode_access_token(credentials.credentials, config.secret_key, config.jwt_algorithm)
    if payload is None or not payload.get("sub"):
        _dep_logger.debug("token_rejected", path=str(request.url.path))
        raise Unauthenticated("Invalid or expired token")

    account = await get_account_service().require_account(payload["sub"])
    return account.id
