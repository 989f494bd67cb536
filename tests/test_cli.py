"""
Tests for the command-line entry point.
"""

import argparse
import io

import pytest
import requests

from fakes import AUTH_URL, TESSER_URL, FakeResponse, payment_payload, step
from tesser_payments.cli import build_parser, parse_override, run_cli

ENV_KEYS = (
    "TESSER_CLIENT_ID",
    "TESSER_CLIENT_SECRET",
    "TESSER_FROM_ACCOUNT_ID",
    "TESSER_RETRY_MAX_ATTEMPTS",
    "TESSER_RETRY_INTERVAL_MS",
    "CIRCLE_API_KEY",
    "ENABLE_VARIANTS",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def base_args(tmp_path):
    return [
        "--env-file",
        str(tmp_path / "missing.env"),
        "--set",
        f"TESSER_BASE_URL={TESSER_URL}",
        "--set",
        f"TESSER_AUTH_URL={AUTH_URL}",
        "--set",
        "TESSER_CLIENT_ID=id",
        "--set",
        "TESSER_CLIENT_SECRET=secret",
        "--set",
        "TESSER_RETRY_MAX_ATTEMPTS=3",
        "--set",
        "TESSER_RETRY_INTERVAL_MS=0",
    ]


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_malformed_override_is_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--set", "NO_EQUALS_SIGN", "payment-test"])


def test_parse_override_splits_on_first_equals():
    assert parse_override(" TESSER_BASE_URL =https://x.test/?a=b") == (
        "TESSER_BASE_URL",
        "https://x.test/?a=b",
    )


@pytest.mark.parametrize("raw", ["NO_EQUALS", "=value", "  =value"])
def test_parse_override_rejects_missing_key(raw):
    with pytest.raises(argparse.ArgumentTypeError):
        parse_override(raw)


def test_repeated_override_keeps_the_last_value():
    args = build_parser().parse_args(["--set", "A=1", "--set", "A=2", "payment-test"])

    assert dict(args.set) == {"A": "2"}


def test_variants_flag_is_case_insensitive():
    args = build_parser().parse_args(["demo", "--variants", "b"])

    assert args.variants == "B"
    assert args.predicate == "first-finalized"


def test_get_account(base_args, session, sleeps):
    session.add_json("POST", AUTH_URL, {"access_token": "tok"})
    session.add_json("GET", f"{TESSER_URL}/v1/accounts/acc-1", {"data": {"id": "acc-1"}})

    exit_code = run_cli([*base_args, "get-account", "acc-1"], session=session, sleep=sleeps)

    assert exit_code == 0


def test_get_account_defaults_to_from_account(base_args, session, sleeps):
    session.add_json("POST", AUTH_URL, {"access_token": "tok"})
    session.add_json("GET", f"{TESSER_URL}/v1/accounts/acc-env", {"data": {"id": "acc-env"}})

    exit_code = run_cli(
        [*base_args, "--set", "TESSER_FROM_ACCOUNT_ID=acc-env", "get-account"],
        session=session,
        sleep=sleeps,
    )

    assert exit_code == 0


def test_missing_credentials_exit_non_zero(tmp_path, session):
    exit_code = run_cli(
        ["--env-file", str(tmp_path / "missing.env"), "get-account", "acc-1"], session=session
    )

    assert exit_code == 1
    assert session.calls == []


def test_auth_failure_exit_non_zero(base_args, session):
    session.add("POST", AUTH_URL, FakeResponse(403, text="forbidden"))

    assert run_cli([*base_args, "get-account", "acc-1"], session=session) == 1


def test_retry_payment_reads_stdin_and_polls(base_args, session, sleeps):
    session.add_json("POST", AUTH_URL, {"access_token": "tok"})
    session.add_json("POST", f"{TESSER_URL}/v1/payments", {"data": {"id": "pay-1"}})
    session.add_json(
        "GET",
        f"{TESSER_URL}/v1/payments/pay-1",
        payment_payload("pay-1", step(1, "in_progress")),
        payment_payload("pay-1", step(1, "completed", finalizedAt="t1")),
    )

    exit_code = run_cli(
        [*base_args, "retry-payment"],
        session=session,
        sleep=sleeps,
        stdin=io.StringIO('{"from_amount": "1.00", "from_currency": "USDC"}'),
    )

    assert exit_code == 0
    assert sleeps.calls == [0.0]
    assert session.json_bodies("POST", f"{TESSER_URL}/v1/payments") == [
        {"from_amount": "1.00", "from_currency": "USDC"}
    ]


def test_retry_payment_failed_step_exit_non_zero(base_args, session, sleeps):
    session.add_json("POST", AUTH_URL, {"access_token": "tok"})
    session.add_json("POST", f"{TESSER_URL}/v1/payments", {"data": {"id": "pay-1"}})
    session.add_json(
        "GET", f"{TESSER_URL}/v1/payments/pay-1", payment_payload("pay-1", step(1, "failed"))
    )

    exit_code = run_cli(
        [*base_args, "retry-payment"], session=session, sleep=sleeps, stdin=io.StringIO("{}")
    )

    assert exit_code == 1
    assert sleeps.calls == []


def test_retry_payment_exhaustion_exit_non_zero(base_args, session, sleeps):
    session.add_json("POST", AUTH_URL, {"access_token": "tok"})
    session.add_json("POST", f"{TESSER_URL}/v1/payments", {"data": {"id": "pay-1"}})
    session.add_json(
        "GET", f"{TESSER_URL}/v1/payments/pay-1", payment_payload("pay-1", step(1, "pending"))
    )

    exit_code = run_cli(
        [*base_args, "retry-payment", "--predicate", "second-confirmed"],
        session=session,
        sleep=sleeps,
        stdin=io.StringIO("{}"),
    )

    assert exit_code == 1
    assert len(session.calls_to("GET", f"{TESSER_URL}/v1/payments/pay-1")) == 3


@pytest.mark.parametrize("raw", ["", "{not json"])
def test_retry_payment_rejects_bad_input(base_args, session, raw):
    exit_code = run_cli([*base_args, "retry-payment"], session=session, stdin=io.StringIO(raw))

    assert exit_code == 1
    assert session.calls == []


def test_circle_payout_needs_api_key(base_args, session):
    assert run_cli([*base_args, "circle-payout"], session=session) == 1
    assert session.calls == []


def test_network_error_exit_non_zero(base_args, session, caplog):
    session.add("POST", AUTH_URL, requests.ConnectionError("connection refused"))

    exit_code = run_cli([*base_args, "get-account", "acc-1"], session=session)

    assert exit_code == 1
    assert "connection refused" in caplog.text


def test_retry_payment_without_payment_id_exit_non_zero(base_args, session, sleeps):
    session.add_json("POST", AUTH_URL, {"access_token": "tok"})
    session.add_json(
        "POST",
        f"{TESSER_URL}/v1/payments",
        {"data": {"errors": [{"message": "from_account_id is required"}]}},
    )

    exit_code = run_cli(
        [*base_args, "retry-payment"], session=session, sleep=sleeps, stdin=io.StringIO("{}")
    )

    assert exit_code == 1
    assert [call["method"] for call in session.calls] == ["POST", "POST"]
    assert sleeps.calls == []
