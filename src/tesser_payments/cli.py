"""
Command-line interface for the Tesser and Circle sandbox flows.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import Any, Callable, Optional, Sequence, TextIO, Tuple

import requests

from . import flows
from .core.client import ApiError, CircleClient, TesserClient
from .core.config import VARIANT_CHOICES, ConfigError, load_circle_config, load_tesser_config
from .core.polling import FIRST_STEP_FINALIZED, SECOND_STEP_CONFIRMED
from .core.retry import RetryError, RetryExecutor

PREDICATES = {
    "first-finalized": FIRST_STEP_FINALIZED,
    "second-confirmed": SECOND_STEP_CONFIRMED,
}


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    """Send log records to stderr; unknown level names fall back to INFO."""
    resolved = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=resolved if isinstance(resolved, int) else logging.INFO,
        format=LOG_FORMAT,
    )


def parse_override(value: str) -> Tuple[str, str]:
    """``argparse`` type for ``--set KEY=VALUE``; only the first ``=`` splits."""
    key, sep, setting = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key.strip(), setting


def add_common_arguments(parser: argparse.ArgumentParser, *, settings: str) -> None:
    """Register ``--env-file``, ``--set`` and ``--log-level`` on ``parser``."""
    parser.add_argument(
        "--env-file",
        default=".env",
        help=f"Path to the .env file containing {settings} settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=parse_override,
        metavar="KEY=VALUE",
        default=[],
        help="Override a setting from the environment; repeatable",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )


def _add_predicate_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--predicate",
        choices=sorted(PREDICATES),
        default="first-finalized",
        help="Step condition that marks the payment as done (default: first-finalized)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tesser-payments",
        description="Run Tesser and Circle sandbox payment flows",
    )
    add_common_arguments(parser, settings="TESSER_* / CIRCLE_*")
    commands = parser.add_subparsers(dest="command", required=True)

    demo = commands.add_parser(
        "demo", help="Deposit, pay and wait for settlement end to end"
    )
    demo.add_argument(
        "--variants",
        type=str.upper,
        choices=VARIANT_CHOICES,
        help="Which variants to run (overrides ENABLE_VARIANTS)",
    )
    _add_predicate_argument(demo)

    get_account = commands.add_parser("get-account", help="Show a single account")
    get_account.add_argument(
        "account_id",
        nargs="?",
        help="Account to fetch (default: TESSER_FROM_ACCOUNT_ID)",
    )

    retry_payment = commands.add_parser(
        "retry-payment", help="Create a payment from a JSON body and poll it"
    )
    retry_payment.add_argument(
        "--input",
        type=argparse.FileType("r", encoding="utf-8"),
        default=None,
        help="File holding the JSON payment body (default: stdin)",
    )
    _add_predicate_argument(retry_payment)

    commands.add_parser(
        "payment-test",
        help="Send a small payment between TESSER_FROM_ACCOUNT_ID and TESSER_TO_ACCOUNT_ID",
    )
    commands.add_parser(
        "circle-payout", help="Check Circle balances and create a payout"
    )
    return parser


def _read_body(stream: TextIO) -> Any:
    raw = stream.read().strip()
    if not raw:
        raise ValueError("No input received")
    return json.loads(raw)


def run_cli(
    argv: Sequence[str] | None = None,
    *,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], Any] = time.sleep,
    stdin: Optional[TextIO] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    overrides = dict(args.set)
    if getattr(args, "variants", None):
        overrides["ENABLE_VARIANTS"] = args.variants

    session = session or requests.Session()
    executor = RetryExecutor(sleep=sleep)

    try:
        return _dispatch(args, overrides, session, executor, stdin or sys.stdin)
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
    except RetryError as exc:
        logging.error("Flow stopped: %s", exc)
    except ApiError as exc:
        logging.error("Request failed: %s", exc)
    except requests.RequestException as exc:
        logging.error("Request failed: %s", exc)
    return 1


def _dispatch(
    args: argparse.Namespace,
    overrides: dict[str, str],
    session: requests.Session,
    executor: RetryExecutor,
    stdin: TextIO,
) -> int:
    if args.command == "circle-payout":
        circle_config = load_circle_config(env_file=args.env_file, overrides=overrides)
        flows.run_circle_payout(CircleClient(circle_config, session=session))
        logging.info("Done!")
        return 0

    if args.command == "retry-payment":
        try:
            body = _read_body(args.input or stdin)
        except ValueError as exc:
            logging.error("Invalid payment body: %s", exc)
            return 1

    config = load_tesser_config(env_file=args.env_file, overrides=overrides)
    if args.command == "demo":
        circle_config = load_circle_config(env_file=args.env_file, overrides=overrides)

    logging.info("Authenticating...")
    client = TesserClient.connect(config, session=session)

    if args.command == "demo":
        flows.run_demo(
            client,
            CircleClient(circle_config, session=session),
            config,
            executor=executor,
            predicate=PREDICATES[args.predicate],
        )
    elif args.command == "get-account":
        flows.run_get_account(
            client, args.account_id or config.require("from_account_id")
        )
    elif args.command == "retry-payment":
        flows.run_retry_payment(
            client, body, executor=executor, predicate=PREDICATES[args.predicate]
        )
    elif args.command == "payment-test":
        flows.run_payment_test(client, config)

    logging.info("Done!")
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
