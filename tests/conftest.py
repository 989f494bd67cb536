"""
Pytest fixtures shared by the suite. Nothing here touches the network.
"""

from __future__ import annotations

from typing import Dict

import pytest

from fakes import AUTH_URL, CIRCLE_URL, TESSER_URL, FakeSession, SleepRecorder
from tesser_payments.core.auth import AccessToken
from tesser_payments.core.client import CircleClient, TesserClient
from tesser_payments.core.config import CircleConfig, TesserConfig
from tesser_payments.core.retry import RetryExecutor


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def executor(sleeps: SleepRecorder) -> RetryExecutor:
    return RetryExecutor(sleep=sleeps)


@pytest.fixture
def tesser_env() -> Dict[str, str]:
    return {
        "TESSER_BASE_URL": TESSER_URL,
        "TESSER_AUTH_URL": AUTH_URL,
        "TESSER_CLIENT_ID": "client-id",
        "TESSER_CLIENT_SECRET": "client-secret",
        "TESSER_RETRY_MAX_ATTEMPTS": "5",
        "TESSER_RETRY_INTERVAL_MS": "0",
    }


@pytest.fixture
def tesser_config(tesser_env: Dict[str, str]) -> TesserConfig:
    return TesserConfig.from_mapping(tesser_env)


@pytest.fixture
def circle_config() -> CircleConfig:
    return CircleConfig(
        api_key="circle-key",
        base_url=CIRCLE_URL,
        from_wallet_id="wallet-1",
        to_wallet_id="recipient-1",
    )


@pytest.fixture
def token() -> AccessToken:
    return AccessToken(value="eyJhbGciOiJSUzI1NiIsInR5cCI6IkpXVCJ9.payload.signature")


@pytest.fixture
def tesser_client(
    tesser_config: TesserConfig, token: AccessToken, session: FakeSession
) -> TesserClient:
    return TesserClient(tesser_config, token, session=session)


@pytest.fixture
def circle_client(circle_config: CircleConfig, session: FakeSession) -> CircleClient:
    return CircleClient(circle_config, session=session)
