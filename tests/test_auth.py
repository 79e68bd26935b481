import pytest

from engmat.auth import AuthError, DbAuthenticator, LocalAuthenticator, PasswordService, User
from engmat.db import build_engine
from engmat.store import LocalStore


def test_password_hash_verifies():
    pw = PasswordService(iterations=1000)
    stored = pw.hash("s3cret")
    assert stored.startswith("pbkdf2$sha256$1000$")
    assert pw.verify("s3cret", stored)
    assert not pw.verify("wrong", stored)
    assert not pw.verify("s3cret", "garbage")


def test_local_login_is_remembered(tmp_path):
    auth = LocalAuthenticator(LocalStore(tmp_path))
    assert not auth.is_authenticated
    user = auth.login("maria@engmat.com.br")
    assert user == User(email="maria@engmat.com.br", name="maria")

    again = LocalAuthenticator(LocalStore(tmp_path))
    assert again.current_user == user

    again.logout()
    assert LocalAuthenticator(LocalStore(tmp_path)).current_user is None


def test_local_login_requires_email(tmp_path):
    with pytest.raises(AuthError):
        LocalAuthenticator(LocalStore(tmp_path)).login("  ")


@pytest.fixture()
def db_auth(tmp_path):
    engine = build_engine(f"sqlite:///{(tmp_path / 'auth.db').as_posix()}")
    try:
        yield DbAuthenticator(engine, PasswordService(iterations=1000))
    finally:
        engine.dispose()


def test_db_register_then_login(db_auth):
    db_auth.register("Joao@Engmat.com.br", "pw")
    assert db_auth.current_user.email == "joao@engmat.com.br"
    db_auth.logout()
    assert db_auth.current_user is None
    assert db_auth.login("joao@engmat.com.br", "pw").name == "joao"


def test_db_rejects_bad_credentials_and_duplicates(db_auth):
    db_auth.register("ana@engmat.com.br", "pw")
    with pytest.raises(AuthError):
        db_auth.login("ana@engmat.com.br", "other")
    with pytest.raises(AuthError):
        db_auth.login("nobody@engmat.com.br", "pw")
    with pytest.raises(AuthError):
        db_auth.register("ana@engmat.com.br", "pw2")


def test_db_login_reports_database_errors(db_auth):
    from engmat.db_models import UserAccount

    UserAccount.__table__.drop(db_auth.engine)
    with pytest.raises(AuthError):
        db_auth.login("ana@engmat.com.br", "pw")
    assert db_auth.current_user is None
