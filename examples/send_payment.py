"""
Minimal script that uses the public API to send a Tesser payment and wait
for it to settle.
"""

from __future__ import annotations

import argparse
import logging
import sys

import requests

from tesser_payments import (
    FIRST_STEP_FINALIZED,
    SECOND_STEP_CONFIRMED,
    ApiError,
    ConfigError,
    RetryError,
    RetryPolicy,
    create_tesser_client,
    load_tesser_config,
    wait_for_payment,
)
from tesser_payments.cli import add_common_arguments, configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a Tesser payment using the SDK API")
    add_common_arguments(parser, settings="TESSER_*")
    parser.add_argument("--from-account-id", help="Source account (default: TESSER_FROM_ACCOUNT_ID)")
    parser.add_argument("--to-account-id", help="Destination account (default: TESSER_TO_ACCOUNT_ID)")
    parser.add_argument("--amount", default="1.00", help="USDC amount to send (default: 1.00)")
    parser.add_argument("--network", default="STELLAR", help="Network for both legs (default: STELLAR)")
    parser.add_argument(
        "--wait-for-confirmation",
        action="store_true",
        help="Wait for the second step to be confirmed instead of the first to finalize",
    )
    parser.add_argument("--max-attempts", type=int, default=60, help="Poll attempts (default: 60)")
    parser.add_argument(
        "--interval-ms", type=int, default=10_000, help="Delay between polls (default: 10000)"
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    configure_logging(args.log_level)

    try:
        config = load_tesser_config(
            env_file=args.env_file,
            overrides=dict(args.set),
            from_account_id=args.from_account_id,
            to_account_id=args.to_account_id,
        )
        from_account_id = config.require("from_account_id")
        to_account_id = config.require("to_account_id")
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    try:
        client = create_tesser_client(config=config)
        payment = client.create_payment(
            {
                "from_currency": "USDC",
                "to_currency": "USDC",
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
                "from_network": args.network,
                "to_network": args.network,
                "from_amount": args.amount,
            }
        )
    except (ApiError, requests.RequestException) as exc:
        logging.error("Payment request failed: %s", exc)
        return 1

    logging.info("Created payment %s; waiting for settlement", payment["id"])
    predicate = SECOND_STEP_CONFIRMED if args.wait_for_confirmation else FIRST_STEP_FINALIZED

    try:
        settled = wait_for_payment(
            client,
            payment["id"],
            predicate=predicate,
            policy=RetryPolicy(
                max_attempts=args.max_attempts, interval_ms=args.interval_ms, label="Poll"
            ),
        )
    except RetryError as exc:
        logging.error("Payment did not settle: %s", exc)
        return 1

    for step in settled.steps:
        logging.info(
            "step%d %s finalized=%s confirmed=%s",
            step.sequence,
            step.status,
            step.finalized_at,
            step.confirmed_at,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
