"""
Public, high-level helpers for driving the Tesser and Circle sandboxes.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping, Optional

import requests

from .core.auth import AccessToken, authenticate
from .core.client import ApiError, CircleClient, TesserClient
from .core.config import (
    CircleConfig,
    ConfigError,
    TesserConfig,
    load_circle_config,
    load_tesser_config,
)
from .core.environment import DemoEnvironment, build_environment, load_env_file
from .core.polling import (
    FIRST_STEP_FINALIZED,
    SECOND_STEP_CONFIRMED,
    Payment,
    PaymentStep,
    PaymentStepPoller,
    StepFailedError,
    StepPredicate,
    StepReached,
    step_confirmed,
    step_finalized,
)
from .core.retry import (
    ExhaustedError,
    FatalError,
    FatalFailure,
    RetryableFailure,
    RetryError,
    RetryExecutor,
    RetryPolicy,
    Success,
    execute,
)

__all__ = [
    "FIRST_STEP_FINALIZED",
    "SECOND_STEP_CONFIRMED",
    "AccessToken",
    "ApiError",
    "CircleClient",
    "CircleConfig",
    "ConfigError",
    "DemoEnvironment",
    "ExhaustedError",
    "FatalError",
    "FatalFailure",
    "Payment",
    "PaymentStep",
    "PaymentStepPoller",
    "RetryError",
    "RetryExecutor",
    "RetryPolicy",
    "RetryableFailure",
    "StepFailedError",
    "StepPredicate",
    "StepReached",
    "Success",
    "TesserClient",
    "authenticate",
    "build_environment",
    "create_circle_client",
    "create_tesser_client",
    "execute",
    "load_circle_config",
    "load_env_file",
    "load_tesser_config",
    "step_confirmed",
    "step_finalized",
    "wait_for_payment",
]


def _reject_mixed(config: Any, overrides: Any, base: Any, fields: Mapping[str, Any]) -> None:
    extras = (overrides, base, *fields.values())
    if config is not None and any(item is not None and item != {} for item in extras):
        raise ValueError(
            "Provide either a pre-built config or individual parameters, not both."
        )


def create_tesser_client(
    *,
    config: Optional[TesserConfig] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    **fields: Any,
) -> TesserClient:
    """
    Authenticate and return a ready :class:`TesserClient`.

    Callers can either supply a :class:`TesserConfig` or let the helper
    assemble one from environment data and keyword fields.
    """
    _reject_mixed(config, overrides, base, fields)
    cfg = config or load_tesser_config(
        env_file=env_file, overrides=overrides, base=base, **fields
    )
    return TesserClient.connect(cfg, session=session)


def create_circle_client(
    *,
    config: Optional[CircleConfig] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    **fields: Any,
) -> CircleClient:
    _reject_mixed(config, overrides, base, fields)
    cfg = config or load_circle_config(
        env_file=env_file, overrides=overrides, base=base, **fields
    )
    return CircleClient(cfg, session=session)


def wait_for_payment(
    client: TesserClient,
    payment_id: str,
    *,
    predicate: StepPredicate = FIRST_STEP_FINALIZED,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> Payment:
    """
    Block until ``predicate`` holds for the payment's steps.

    Raises :class:`StepFailedError` as soon as a step fails and
    :class:`ExhaustedError` when the policy runs out of attempts.
    """
    poller = PaymentStepPoller(client.get_payment, executor=RetryExecutor(sleep=sleep))
    return poller.poll(
        payment_id, predicate, policy or RetryPolicy.from_config(client.config, "Poll")
    )
