from datetime import timedelta

import pytest

from stockbook.models import SessionToken
from stockbook.models.auth import ROLE_MANAGER
from stockbook.services import auth_service, session_service
from stockbook.services.auth_service import PasswordValidationError
from stockbook.validation import ConflictError, ValidationError

from conftest import TEST_PASSWORD


def test_create_user_hashes_password(db_session):
    user = auth_service.create_user("Mgr@Stockbook.test", TEST_PASSWORD, "Ada", "Obi", role=ROLE_MANAGER)

    assert user.email == "mgr@stockbook.test"
    assert user.password_hash != TEST_PASSWORD
    assert auth_service.verify_password(TEST_PASSWORD, user.password_hash)
    assert not auth_service.verify_password("Password124", user.password_hash)


def test_create_user_rules(db_session, staff):
    with pytest.raises(PasswordValidationError):
        auth_service.create_user("a@b.test", "short1", "A", "B")
    with pytest.raises(PasswordValidationError):
        auth_service.create_user("a@b.test", "longbutnodigits", "A", "B")
    with pytest.raises(ValidationError):
        auth_service.create_user("not-an-email", TEST_PASSWORD, "A", "B")
    with pytest.raises(ValidationError):
        auth_service.create_user("a@b.test", TEST_PASSWORD, "A", "B", role="OWNER")
    with pytest.raises(ConflictError):
        auth_service.create_user("staff@stockbook.test", TEST_PASSWORD, "A", "B")


def test_authenticate(db_session, staff):
    assert auth_service.authenticate("STAFF@stockbook.test", TEST_PASSWORD).id == staff.id
    assert auth_service.authenticate("staff@stockbook.test", "wrong") is None
    assert auth_service.authenticate("nobody@stockbook.test", TEST_PASSWORD) is None

    staff.is_active = False
    db_session.commit()
    assert auth_service.authenticate("staff@stockbook.test", TEST_PASSWORD) is None


def test_session_lifecycle(db_session, staff):
    session, token = session_service.create_session(staff.id)

    assert session.token_hash == session_service.hash_token(token)
    assert session.token_hash != token
    assert session_service.validate_session(token).id == staff.id

    assert session_service.revoke_session(token) is True
    assert session_service.validate_session(token) is None
    assert session_service.revoke_session(token) is False


def test_expired_session_is_rejected(db_session, staff):
    session, token = session_service.create_session(staff.id)
    session.expires_at = session.created_at - timedelta(seconds=1)
    db_session.commit()

    assert session_service.validate_session(token) is None


def test_deactivated_user_session_is_rejected(db_session, staff):
    _, token = session_service.create_session(staff.id)
    staff.is_active = False
    db_session.commit()

    assert session_service.validate_session(token) is None
    assert db_session.query(SessionToken).count() == 1


def test_change_password(db_session, staff):
    with pytest.raises(ValidationError):
        auth_service.change_password(staff, "Wrong12345", "NewPassword1")
    with pytest.raises(PasswordValidationError):
        auth_service.change_password(staff, TEST_PASSWORD, "weak")
    with pytest.raises(PasswordValidationError):
        auth_service.change_password(staff, TEST_PASSWORD, TEST_PASSWORD)

    auth_service.change_password(staff, TEST_PASSWORD, "NewPassword1")

    assert auth_service.authenticate("staff@stockbook.test", "NewPassword1").id == staff.id
    assert auth_service.authenticate("staff@stockbook.test", TEST_PASSWORD) is None


def test_revoke_all_user_sessions(db_session, staff, manager):
    _, first = session_service.create_session(staff.id)
    _, second = session_service.create_session(staff.id)
    _, other = session_service.create_session(manager.id)

    assert session_service.revoke_all_user_sessions(staff.id) == 2
    assert session_service.validate_session(first) is None
    assert session_service.validate_session(second) is None
    assert session_service.validate_session(other).id == manager.id
    assert session_service.revoke_all_user_sessions(staff.id) == 0
