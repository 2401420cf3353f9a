"""Account Service: registration, credential checks and own-profile edits."""

from typing import Optional

from ..errors import NotFoundError, Unauthenticated, ValidationError
from ..schemas import Account
from ..store import RecordStore
from ..utils.logging import get_logger
from ..utils.security import hash_password, validate_password_strength, verify_password

logger = get_logger("engine.account_service")

# Profile fields an account may change on itself
EDITABLE_PROFILE_FIELDS = ("full_name", "avatar_url")


class AccountService:
    """Backs the authentication collaborator with the accounts collection."""

    def __init__(self, store: RecordStore, default_role: str = "security_officer"):
        self._store = store
        self._default_role = default_role

    async def register(
        self,
        full_name: str,
        email: str,
        password: str,
        avatar_url: Optional[str] = None,
    ) -> Account:
        if not full_name or not full_name.strip():
            raise ValidationError("full_name must not be empty", field="full_name")
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email address is required", field="email")
        try:
            validate_password_strength(password)
        except ValueError as exc:
            raise ValidationError(str(exc), field="password") from exc

        if await self._store.query("accounts", {"email": email}):
            raise ValidationError("Email already registered", field="email")

        row = await self._store.insert("accounts", {
            "full_name": full_name.strip(),
            "email": email,
            "password_hash": hash_password(password),
            "role": self._default_role,
            "avatar_url": avatar_url,
        })
        account = Account.model_validate(row)
        logger.info("account_registered", id=account.id, role=account.role)
        return account

    async def authenticate(self, email: str, password: str) -> Account:
        """Return the account for valid credentials, else raise Unauthenticated."""
        rows = await self._store.query("accounts", {"email": (email or "").strip().lower()})
        if not rows or not verify_password(password, rows[0]["password_hash"]):
            logger.warning("login_failed", email=email)
            raise Unauthenticated("Invalid credentials")
        return Account.model_validate(rows[0])

    async def get_account(self, account_id: str) -> Account:
        return Account.model_validate(await self._store.get_by_id("accounts", account_id))

    async def update_profile(self, account_id: Optional[str], changes: dict) -> Account:
        """Owner-only edit: the caller can only ever change its own record."""
        if not account_id:
            raise Unauthenticated()
        unknown = set(changes) - set(EDITABLE_PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {sorted(unknown)}", field=sorted(unknown)[0])
        if "full_name" in changes and not (changes["full_name"] or "").strip():
            raise ValidationError("full_name must not be empty", field="full_name")

        if changes:
            await self._store.update("accounts", account_id, changes)
            logger.info("account_updated", id=account_id, fields=sorted(changes))
        return await self.get_account(account_id)

    async def list_accounts(self) -> list[Account]:
        rows = await self._store.query("accounts", order_by="full_name")
        return [Account.model_validate(row) for row in rows]

    async def require_account(self, account_id: Optional[str]) -> Account:
        """Resolve the acting account; a token for a vanished account is not authenticated."""
        if not account_id:
            raise Unauthenticated()
        try:
            return await self.get_account(account_id)
        except NotFoundError:
            raise Unauthenticated("Account no longer exists") from None
