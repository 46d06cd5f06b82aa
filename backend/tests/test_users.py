from datetime import timedelta

import pytest

from stockpile.errors import ConflictError
from stockpile.models.auth import AuthSession
from stockpile.models.item import Item
from stockpile.models.user import ProviderAccount, User
from stockpile.services.items import ItemService
from stockpile.services.sessions import SessionStore
from stockpile.services.users import UserService

from conftest import TEST_SECRET_KEY


def test_duplicate_email_conflicts(db):
    users = UserService(db)
    users.create_user("a@example.com", password="TestPass123!")

    with pytest.raises(ConflictError):
        users.create_user("A@Example.com ", password="OtherPass123!")


def test_users_without_phone_do_not_collide(db):
    users = UserService(db)

    first = users.create_user("first@example.com")
    second = users.create_user("second@example.com")

    assert first.phone_number is None
    assert second.phone_number is None
    assert db.query(User).count() == 2


def test_duplicate_phone_conflicts(db):
    users = UserService(db)
    users.create_user("first@example.com", phone_number="+15555550100")

    with pytest.raises(ConflictError):
        users.create_user("second@example.com", phone_number="+15555550100")


def test_password_check(db):
    users = UserService(db)
    user = users.create_user("pw@example.com", password="TestPass123!")

    assert users.authenticate_password("PW@example.com", "TestPass123!").id == user.id
    assert users.authenticate_password("pw@example.com", "wrong-password") is None
    assert users.authenticate_password("nobody@example.com", "TestPass123!") is None
    assert user.password_hash != "TestPass123!"


def test_password_check_fails_for_passwordless_user(db):
    users = UserService(db)
    users.get_or_create_by_phone("+15555550101")

    assert users.authenticate_password("15555550101@phone.invalid", "") is None


def test_get_or_create_by_phone_reuses_user(db):
    users = UserService(db)

    first = users.get_or_create_by_phone("+15555550102")
    second = users.get_or_create_by_phone("+15555550102")

    assert first.id == second.id
    assert first.email == "15555550102@phone.invalid"


def test_provider_login_links_existing_email(db):
    users = UserService(db)
    existing = users.create_user("oauth@example.com", password="TestPass123!")

    linked = users.get_or_create_for_provider("Google", "google-sub-1", email="oauth@example.com")
    again = users.get_or_create_for_provider("google", "google-sub-1", email="changed@example.com")

    assert linked.id == existing.id
    assert again.id == existing.id
    assert db.query(ProviderAccount).count() == 1


def test_same_subject_from_different_providers_are_distinct(db):
    users = UserService(db)

    google = users.get_or_create_for_provider("google", "subject-1")
    github = users.get_or_create_for_provider("github", "subject-1")

    assert google.id != github.id


def test_deleting_user_cascades(db, clock):
    users = UserService(db)
    user = users.create_user("gone@example.com")
    store = SessionStore(db, secret_key=TEST_SECRET_KEY, ttl=timedelta(days=30), clock=clock)
    store.create(user.id)
    ItemService(db, clock=clock).create_item(user.id, {"name": "Widget"})
    users.get_or_create_for_provider("google", "gone-sub", email="gone@example.com")
    db.commit()

    users.delete_user(user.id)
    db.commit()

    assert db.query(AuthSession).count() == 0
    assert db.query(Item).count() == 0
    assert db.query(ProviderAccount).count() == 0


def test_overlong_password_is_rejected_not_raised(db):
    users = UserService(db)
    users.create_user("long@example.com", password="TestPass123!")

    assert users.authenticate_password("long@example.com", "a" * 100) is None
    assert users.authenticate_password("nobody@example.com", "a" * 100) is None


def test_unknown_email_still_checks_a_password(db, monkeypatch):
    from stockpile.services import users as users_module

    checked = []
    monkeypatch.setattr(
        users_module,
        "verify_password",
        lambda plain, hashed: checked.append(hashed) or False,
    )
    users = UserService(db)

    assert users.authenticate_password("nobody@example.com", "TestPass123!") is None
    assert checked == [users_module.dummy_password_hash()]


def test_provider_subjects_differing_in_case_or_punctuation_get_distinct_users(db):
    users = UserService(db)

    first = users.get_or_create_for_provider("github", "User_1")
    second = users.get_or_create_for_provider("github", "user-1")

    assert first.id != second.id
    assert first.email != second.email
    assert first.email.endswith("@github.invalid")
