import itertools
import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Settings are read from the environment on every call, so the values set
    here are what every module sees for the whole session.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["ENVIRONMENT"] = "test"
    os.environ["JWT_SECRET"] = "test-jwt-secret"
    os.environ["PAYME_SECRET"] = "payme-test-secret"
    os.environ["CLICK_SECRET"] = "click-test-secret"
    os.environ["CLIENT_URL"] = "http://shop.test"
    os.environ["LOG_DIR"] = ""
    os.environ.pop("RECONCILE_PAYMENT_AMOUNTS", None)


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _reset_gateways():
    from storefront.payment.gateway import reset_gateways

    reset_gateways()
    yield
    reset_gateways()


_phones = itertools.count(100000000)


@pytest.fixture
def make_account():
    """Factory: persist an active account and return it."""
    from protean import current_domain

    from storefront.identity.security import hash_password
    from storefront.identity.user import User

    def _make(name="Test User", phone=None, role="user", password="secret123"):
        user = User.register(
            name=name,
            phone=phone or f"+998{next(_phones)}",
            password_hash=hash_password(password),
            role=role,
        )
        current_domain.repository_for(User).add(user)
        return user

    return _make


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for an account."""
    from storefront.identity.security import create_access_token

    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers
