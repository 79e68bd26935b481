"""Login for the dashboard: local demo accounts or database accounts."""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from .db import create_db_and_tables, get_session
from .db_models import UserAccount
from .store import LocalStore, PersistenceError

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


@dataclass(frozen=True)
class User:
    email: str
    name: str

    @classmethod
    def from_email(cls, email: str) -> "User":
        email = email.strip()
        return cls(email=email, name=email.split("@")[0] or "Usuário")


@dataclass
class PasswordService:
    """PBKDF2 password hashing."""

    iterations: int = 120_000
    algorithm: str = "sha256"

    def hash(self, password: str) -> str:
        salt = os.urandom(16)
        derived = hashlib.pbkdf2_hmac(self.algorithm, password.encode("utf-8"), salt, self.iterations)
        encoded_salt = base64.b64encode(salt).decode("ascii")
        encoded_hash = base64.b64encode(derived).decode("ascii")
        return f"pbkdf2${self.algorithm}${self.iterations}${encoded_salt}${encoded_hash}"

    def verify(self, password: str, stored_hash: str) -> bool:
        try:
            _, algorithm, iteration_str, salt_b64, hash_b64 = stored_hash.split("$")
            iterations = int(iteration_str)
            salt = base64.b64decode(salt_b64)
            expected = base64.b64decode(hash_b64)
        except (ValueError, TypeError):
            return False
        derived = hashlib.pbkdf2_hmac(algorithm, password.encode("utf-8"), salt, iterations)
        return hmac.compare_digest(derived, expected)


class Authenticator(ABC):
    current_user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    @abstractmethod
    def login(self, email: str, password: Optional[str] = None) -> User: ...

    @abstractmethod
    def register(self, email: str, password: str) -> User: ...

    @abstractmethod
    def logout(self) -> None: ...


class LocalAuthenticator(Authenticator):
    """Demo mode: any e-mail logs in; the user is remembered in the data dir."""

    USER_KEY = "user"

    def __init__(self, store: LocalStore) -> None:
        self._store = store
        saved = store.read_json(self.USER_KEY, None)
        self.current_user = User(**saved) if saved else None

    def login(self, email: str, password: Optional[str] = None) -> User:
        if not email or not email.strip():
            raise AuthError("E-mail is required.")
        user = User.from_email(email)
        try:
            self._store.write_json(self.USER_KEY, {"email": user.email, "name": user.name})
        except PersistenceError as exc:
            raise AuthError(f"Could not sign in: {exc}") from exc
        self.current_user = user
        return user

    def register(self, email: str, password: str) -> User:
        return self.login(email, password)

    def logout(self) -> None:
        self._store.write_json(self.USER_KEY, None)
        self.current_user = None


class DbAuthenticator(Authenticator):
    """Accounts in the `user_account` table; the session user lives in memory."""

    def __init__(self, engine, passwords: Optional[PasswordService] = None) -> None:
        self.engine = engine
        self.passwords = passwords or PasswordService()
        self.current_user = None
        create_db_and_tables(engine)

    def _account(self, session, email: str) -> Optional[UserAccount]:
        return session.exec(select(UserAccount).where(UserAccount.email == email)).first()

    def login(self, email: str, password: Optional[str] = None) -> User:
        email = (email or "").strip().lower()
        try:
            with get_session(self.engine) as s:
                account = self._account(s, email)
                ok = account is not None and self.passwords.verify(password or "", account.pass_hash)
        except SQLAlchemyError as exc:
            logger.exception("Login lookup failed for %s", email)
            raise AuthError(f"Could not sign in: {exc}") from exc
        if not ok:
            logger.warning("Failed login for %s", email)
            raise AuthError("Invalid e-mail or password.")
        self.current_user = User.from_email(email)
        return self.current_user

    def register(self, email: str, password: str) -> User:
        email = (email or "").strip().lower()
        if not email or not password:
            raise AuthError("E-mail and password are required.")
        try:
            with get_session(self.engine) as s:
                if self._account(s, email) is not None:
                    raise AuthError("An account with this e-mail already exists.")
                s.add(UserAccount(email=email, pass_hash=self.passwords.hash(password)))
        except SQLAlchemyError as exc:
            raise AuthError(f"Could not create account: {exc}") from exc
        logger.info("Registered %s", email)
        return self.login(email, password)

    def logout(self) -> None:
        self.current_user = None
