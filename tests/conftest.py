# tests/conftest.py

from datetime import date

import pytest


@pytest.fixture
def app_with_db():
    """
    Creates a new app instance for a test, sets up an in-memory database,
    and yields the app within an application context.
    """
    from app import create_app, db
    from config import TestConfig

    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app  # The tests will run here
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app_with_db):
    return app_with_db.test_client()


@pytest.fixture
def country(app_with_db):
    """A single active country, UA."""
    from app import db
    from app.models import Country

    ua = Country(name='Ukraine', code='UA', currency='UAH', is_active=True)
    db.session.add(ua)
    db.session.commit()
    return ua


@pytest.fixture
def balances(app_with_db):
    """The default EXCHANGE/TRUST/CROSSGIF/FBM balances, keyed by code."""
    from app.ledger.balances import ensure_default_balances
    from app.models import Balance

    ensure_default_balances()
    return {b.code: b for b in Balance.query.all()}


@pytest.fixture
def add_metrics(app_with_db):
    """Factory that stores a DailyMetrics row through the calculator."""
    from app.calculator.daily import create_daily_metrics

    def _add(day, country_id, **inputs):
        if isinstance(day, str):
            day = date.fromisoformat(day)
        return create_daily_metrics(day, country_id, inputs)

    return _add
