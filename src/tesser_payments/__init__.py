"""
Public facade for the Tesser sandbox demo package.

Re-exports the pieces integrators need so they can
``from tesser_payments import ...`` without navigating the package.
"""

from .api import create_circle_client, create_tesser_client, wait_for_payment
from .core import (
    FIRST_STEP_FINALIZED,
    SECOND_STEP_CONFIRMED,
    AccessToken,
    ApiError,
    CircleClient,
    CircleConfig,
    ConfigError,
    ExhaustedError,
    FatalError,
    FatalFailure,
    Payment,
    PaymentStep,
    PaymentStepPoller,
    RetryableFailure,
    RetryError,
    RetryExecutor,
    RetryPolicy,
    StepFailedError,
    StepReached,
    Success,
    SyntheticData,
    TesserClient,
    TesserConfig,
    authenticate,
    execute,
    load_circle_config,
    load_env_file,
    load_tesser_config,
    step_confirmed,
    step_finalized,
)

__all__ = (
    "FIRST_STEP_FINALIZED",
    "SECOND_STEP_CONFIRMED",
    "AccessToken",
    "ApiError",
    "CircleClient",
    "CircleConfig",
    "ConfigError",
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
    "StepReached",
    "Success",
    "SyntheticData",
    "TesserClient",
    "TesserConfig",
    "authenticate",
    "create_circle_client",
    "create_tesser_client",
    "execute",
    "load_circle_config",
    "load_env_file",
    "load_tesser_config",
    "step_confirmed",
    "step_finalized",
    "wait_for_payment",
)
