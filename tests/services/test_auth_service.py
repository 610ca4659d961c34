import pytest

from campus_portal.core.auth_deps import principal_from_token
from campus_portal.core.errors import ValidationError
from campus_portal.core.security import decode_token
from campus_portal.core.types import UserRole
from campus_portal.seed import seed
from campus_portal.services.auth_service import authenticate, find_by_email, issue_token, register


def test_register_normalizes_email_and_hashes_password(db):
    u = register(db, name="  Ravi ", email="Ravi@Campus.EDU", password="secret1", department="EEE")

    assert u.name == "Ravi"
    assert u.email == "ravi@campus.edu"
    assert u.password_hash != "secret1"
    assert u.role == "user"
    assert find_by_email(db, "RAVI@campus.edu").id == u.id


def test_duplicate_email_is_rejected(db):
    register(db, name="A", email="dup@campus.edu", password="secret1")
    with pytest.raises(ValidationError):
        register(db, name="B", email="DUP@campus.edu", password="secret2")


def test_authenticate(db):
    register(db, name="A", email="a@campus.edu", password="secret1")

    assert authenticate(db, "a@campus.edu", "secret1") is not None
    assert authenticate(db, "a@campus.edu", "wrong") is None
    assert authenticate(db, "nobody@campus.edu", "secret1") is None


def test_token_round_trips_to_principal(db):
    u = register(db, name="Admin", email="admin@campus.edu", password="secret1", role=UserRole.admin)
    token = issue_token(u)

    claims = decode_token(token)
    assert claims["sub"] == str(u.id)

    p = principal_from_token(token)
    assert p.user_id == str(u.id)
    assert p.is_admin is True
    assert p.name == "Admin"


def test_seed_is_idempotent(db):
    assert seed(db) == 2
    assert seed(db) == 0

    admin = find_by_email(db, "admin@campus.local")
    assert admin.role == UserRole.admin.value
    assert authenticate(db, "student@campus.local", "student123") is not None
