"""
Identity provider seam.

``LocalIdentityProvider`` stores credentials in ``accounts.json`` and the
signed-in account in ``current_session.json``; profile documents go to the
document store. Custom claims (role, verification) live on the account,
separate from the stored profile document.
"""

import hashlib
import json
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..errors import MarketplaceError, RemoteRejectedError
from ..models.user import Role, UserRecord
from .documents import LocalDocumentStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = 120_000


@dataclass
class AccountResult:
    """Outcome of account creation."""
    account_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.account_id is not None and self.error is None


@dataclass
class AuthResult:
    """Outcome of authentication."""
    user: Optional[UserRecord] = None
    error: Optional[str] = None


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return digest.hex()


class LocalIdentityProvider:
    """File-backed identity provider for local and test deployments."""

    def __init__(self, data_dir: Path, documents: Optional[LocalDocumentStore] = None):
        """Initialize the provider with a data directory."""
        self.data_dir = Path(data_dir)
        self.accounts_file = self.data_dir / "accounts.json"
        self.session_file = self.data_dir / "current_session.json"
        self.documents = documents or LocalDocumentStore(self.data_dir)
        self._ensure_data_files()

    def _ensure_data_files(self) -> None:
        """Ensure data directory and files exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.accounts_file.exists():
            self._save_accounts([])

    def _load_accounts(self) -> list[dict]:
        """Load all accounts from storage."""
        with open(self.accounts_file, "r") as f:
            return json.load(f)

    def _save_accounts(self, accounts: list[dict]) -> None:
        """Save all accounts to storage."""
        with open(self.accounts_file, "w") as f:
            json.dump(accounts, f, indent=2)

    def _find_account(self, email: str) -> Optional[dict]:
        email = email.strip().lower()
        for account in self._load_accounts():
            if account["email"] == email:
                return account
        return None

    def create_account(self, email: str, password: str, profile_data: dict) -> AccountResult:
        """Create credentials and write the account's user document."""
        if not email or "@" not in email:
            return AccountResult(error="The email address is badly formatted.")
        if len(password) < MIN_PASSWORD_LENGTH:
            return AccountResult(error="Password should be at least 6 characters.")
        if self._find_account(email):
            return AccountResult(error="The email address is already in use by another account.")

        salt = secrets.token_hex(16)
        account = {
            "id": uuid.uuid4().hex,
            "email": email.strip().lower(),
            "salt": salt,
            "password_hash": _hash_password(password, salt),
            "claims": {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            self.documents.write_profile_document(account["id"], profile_data)
        except MarketplaceError as exc:
            return AccountResult(error=exc.message)

        accounts = self._load_accounts()
        accounts.append(account)
        self._save_accounts(accounts)
        logger.info("Created account %s for %s", account["id"], account["email"])

        return AccountResult(account_id=account["id"])

    def authenticate(self, email: str, password: str) -> AuthResult:
        """Check credentials and start a session for the account."""
        account = self._find_account(email or "")
        if not account or _hash_password(password, account["salt"]) != account["password_hash"]:
            return AuthResult(error="Invalid email or password.")

        document = self.documents.get_document(account["id"])
        if document is None:
            return AuthResult(error="User profile not found in database")

        self._set_session(account["id"])
        return AuthResult(user=UserRecord.from_document(account["id"], document, account["claims"]))

    def get_current_session(self) -> Optional[UserRecord]:
        """The signed-in account, or None."""
        if not self.session_file.exists():
            return None
        with open(self.session_file) as f:
            session = json.load(f)

        account_id = session.get("account_id")
        account = next((a for a in self._load_accounts() if a["id"] == account_id), None)
        document = self.documents.get_document(account_id) if account_id else None
        if not account or document is None:
            return None
        return UserRecord.from_document(account_id, document, account["claims"])

    def sign_out(self) -> None:
        if self.session_file.exists():
            self.session_file.unlink()

    def _set_session(self, account_id: str) -> None:
        with open(self.session_file, "w") as f:
            json.dump({
                "account_id": account_id,
                "signed_in_at": datetime.now(timezone.utc).isoformat(),
            }, f)

    def get_claims(self, account_id: str) -> dict:
        account = next((a for a in self._load_accounts() if a["id"] == account_id), None)
        return dict(account["claims"]) if account else {}

    def set_custom_claims(self, account_id: str, claims: dict) -> None:
        """Replace an account's custom claims."""
        accounts = self._load_accounts()
        for account in accounts:
            if account["id"] == account_id:
                account["claims"] = dict(claims)
                self._save_accounts(accounts)
                return
        raise RemoteRejectedError(f"No account with id {account_id}")


class LocalClaimSetter:
    """Grants admin claims when called with the registration key."""

    def __init__(self, identity: LocalIdentityProvider, authorization_key: str):
        self.identity = identity
        self.authorization_key = authorization_key

    def set_admin_claims(self, account_id: str, authorization_key: str) -> None:
        if not account_id:
            raise RemoteRejectedError("UID is required")
        if authorization_key != self.authorization_key:
            raise RemoteRejectedError("Admin registration key required")

        document = self.identity.documents.get_document(account_id)
        if not document or document.get("role") != Role.ADMIN.value:
            raise RemoteRejectedError("User must have Admin role in the document store")

        self.identity.set_custom_claims(account_id, {
            "role": Role.ADMIN.value,
            "verified": True,
            "admin": True,
        })
        logger.info("Admin claims set for %s", account_id)
