"""
Tests for the public high-level helpers.
"""

import pytest

import tesser_payments
from fakes import AUTH_URL, TESSER_URL, payment_payload, step
from tesser_payments import (
    ExhaustedError,
    RetryPolicy,
    create_circle_client,
    create_tesser_client,
    wait_for_payment,
)


def test_create_tesser_client_from_fields(session, tesser_env):
    session.add_json("POST", AUTH_URL, {"access_token": "tok"})

    client = create_tesser_client(
        session=session, env_file=None, base=tesser_env, from_account_id="acc-1"
    )

    assert client.token.value == "tok"
    assert client.config.from_account_id == "acc-1"


def test_create_tesser_client_rejects_config_plus_fields(tesser_config):
    with pytest.raises(ValueError, match="not both"):
        create_tesser_client(config=tesser_config, from_account_id="acc-1")


def test_create_circle_client_with_config(circle_config, session):
    client = create_circle_client(config=circle_config, session=session)

    assert client.config is circle_config
    assert session.calls == []


def test_wait_for_payment_uses_configured_policy(session, tesser_client, sleeps):
    session.add_json(
        "GET",
        f"{TESSER_URL}/v1/payments/pay-1",
        payment_payload("pay-1", step(1, "in_progress")),
        payment_payload("pay-1", step(1, "in_progress")),
        payment_payload("pay-1", step(1, "completed", finalizedAt="t1")),
    )

    payment = wait_for_payment(tesser_client, "pay-1", sleep=sleeps)

    assert payment.steps[0].status == "completed"
    assert len(sleeps.calls) == 2


def test_wait_for_payment_explicit_policy(session, tesser_client, sleeps):
    session.add_json(
        "GET", f"{TESSER_URL}/v1/payments/pay-1", payment_payload("pay-1", step(1, "pending"))
    )

    with pytest.raises(ExhaustedError):
        wait_for_payment(
            tesser_client,
            "pay-1",
            policy=RetryPolicy(max_attempts=2, interval_ms=3000),
            sleep=sleeps,
        )

    assert sleeps.calls == [3.0]


def test_public_facade_exports_resolve():
    for name in tesser_payments.__all__:
        assert hasattr(tesser_payments, name), name
