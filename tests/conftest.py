"""Shared test fixtures for the refund payment file tests.

Everything here is pure: no database, no network. The API client runs the
FastAPI app in-process with settings that point at a known-good debtor.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.routes.payment_files import get_settings
from app.core.config import Settings
from app.main import app
from app.schemas.payment_file import DebtorConfiguration, GenerationOptions
from app.services.payment_file.encoder import PaymentFileEncoder
from tests.factories import VALID_DEBTOR_IBAN, fixed_clock


@pytest.fixture
def debtor_config() -> DebtorConfiguration:
    return DebtorConfiguration(
        name="Test Organization",
        iban=VALID_DEBTOR_IBAN,
        bic="GKCCBEBB",
        country="BE",
    )


@pytest.fixture
def encoder(debtor_config: DebtorConfiguration) -> PaymentFileEncoder:
    return PaymentFileEncoder(debtor_config, GenerationOptions(), clock=fixed_clock)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        debtor_name="Test Organization",
        debtor_iban=VALID_DEBTOR_IBAN,
        debtor_bic="GKCCBEBB",
        debtor_country="BE",
    )


@pytest.fixture(scope="function")
def client(test_settings: Settings):
    """FastAPI test client with overridden settings dependency."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
