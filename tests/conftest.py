"""
Shared pytest fixtures for the TestFlow test suite.

Provides the Flask application, test client, a clean database per test,
Faker-driven user and task factories, and bearer-token headers for one
user of each role.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from itertools import count

import pytest
from faker import Faker

from tests.helpers import DEFAULT_PASSWORD, TEST_JWT_SECRET, auth_headers

# Set testing environment before importing the app.
os.environ["FLASK_ENV"] = "testing"
os.environ["TEST_JWT_SECRET_KEY"] = TEST_JWT_SECRET

from testflow import create_app, db
from testflow.jwt import create_token
from testflow.models import Role, Task, TaskNumberSequence, TaskStatus, TaskUrgency, User

fake = Faker()


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def app():
    """Create the Flask app once for the whole test session."""
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """Provide a fresh Flask test client for each test."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(scope="function")
def db_session(app):
    """
    Provide an empty database for each test function.

    Tables are dropped and recreated before the test so the bootstrap
    admin created by ``create_app`` does not leak into tests that did not
    ask for it.
    """
    with app.app_context():
        db.drop_all()
        db.create_all()
        yield db
        db.session.rollback()
        db.drop_all()


@pytest.fixture
def restrict_tester_updates(app):
    """Enable the tester-update restriction for the duration of a test."""
    previous = app.config.get("RESTRICT_TESTER_UPDATES", False)
    app.config["RESTRICT_TESTER_UPDATES"] = True
    yield
    app.config["RESTRICT_TESTER_UPDATES"] = previous


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def user_factory(db_session) -> Callable[..., User]:
    """
    Factory fixture that creates and commits User rows.

    Usernames and emails are made unique with a counter so tests can
    create as many users as they need.
    """
    sequence = count(1)

    def _create_user(
        *,
        role: Role | str = Role.DEVELOPER,
        username: str | None = None,
        email: str | None = None,
        full_name: str | None = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> User:
        n = next(sequence)
        role_value = Role(role).value
        user = User(
            username=username or f"{role_value}{n}",
            email=email or f"{role_value}{n}@example.com",
            full_name=full_name or fake.name(),
            role=role_value,
            is_active=is_active,
        )
        user.set_password(password)
        db_session.session.add(user)
        db_session.session.commit()
        return user

    return _create_user


@pytest.fixture
def task_factory(db_session) -> Callable[..., Task]:
    """Factory fixture that creates and commits Task rows with Faker defaults."""

    def _create_task(
        *,
        creator: User,
        tester: User | None = None,
        title: str | None = None,
        status: str = TaskStatus.NEW.value,
        urgency: str = TaskUrgency.MEDIUM.value,
        comment: str | None = None,
    ) -> Task:
        task = Task(
            task_number=TaskNumberSequence.next_value(),
            title=title or fake.sentence(nb_words=4),
            description=fake.paragraph(),
            assigned_by=creator.id,
            tester_id=tester.id if tester else None,
            status=status,
            urgency=urgency,
            comment=comment,
        )
        db_session.session.add(task)
        db_session.session.commit()
        return task

    return _create_task


@pytest.fixture
def admin_user(user_factory) -> User:
    return user_factory(role=Role.ADMIN, username="admin_user", full_name="Ada Admin")


@pytest.fixture
def manager_user(user_factory) -> User:
    return user_factory(role=Role.MANAGER, username="manager1", full_name="Mona Manager")


@pytest.fixture
def tester_user(user_factory) -> User:
    return user_factory(role=Role.TESTER, username="tester1", full_name="Theo Tester")


@pytest.fixture
def developer_user(user_factory) -> User:
    return user_factory(role=Role.DEVELOPER, username="developer1", full_name="Dana Developer")


# -----------------------------------------------------------------------------
# Token / Header Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def headers_for(app) -> Callable[[User], dict[str, str]]:
    """Return a function that builds bearer headers for a given user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_token(
            user_id=user.id,
            username=user.username,
            role=user.role,
            secret=app.config["JWT_SECRET_KEY"],
            expiry_hours=1,
        )
        return auth_headers(token)

    return _headers


@pytest.fixture
def admin_headers(headers_for, admin_user) -> dict[str, str]:
    return headers_for(admin_user)


@pytest.fixture
def manager_headers(headers_for, manager_user) -> dict[str, str]:
    return headers_for(manager_user)


@pytest.fixture
def tester_headers(headers_for, tester_user) -> dict[str, str]:
    return headers_for(tester_user)


@pytest.fixture
def developer_headers(headers_for, developer_user) -> dict[str, str]:
    return headers_for(developer_user)
