"""
Sandbox flows that exercise the Tesser and Circle APIs end to end.

Each ``run_*`` function backs one CLI sub-command. Calls that the sandbox is
known to reject transiently (deposits, instructions, payments) go through a
:class:`~tesser_payments.core.retry.RetryExecutor`; payment completion is
awaited with a :class:`~tesser_payments.core.polling.PaymentStepPoller`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .core.client import CircleClient, TesserClient
from .core.config import ConfigError, TesserConfig
from .core.polling import FIRST_STEP_FINALIZED, Payment, PaymentStepPoller, StepPredicate
from .core.retry import RetryExecutor, RetryPolicy
from .core.synthetic import SyntheticData

__all__ = [
    "VariantEntities",
    "create_deposit",
    "create_payment",
    "display_current_state",
    "find_funding_bank_account",
    "poll_payment_completion",
    "run_circle_payout",
    "run_demo",
    "run_get_account",
    "run_payment_test",
    "run_retry_payment",
    "setup_entities",
    "simulate_deposit",
]

SEPARATOR = "-" * 60


@dataclass(frozen=True)
class VariantEntities:
    customer_counterparty_id: str
    customer_counterparty_name: str
    beneficiary_counterparty_id: str
    beneficiary_counterparty_name: str
    ledger_account_id: str
    ledger_name: str
    wallet_account_id: str
    wallet_name: str


def _banner(title: str) -> None:
    logging.info(SEPARATOR)
    logging.info("  %s", title)
    logging.info(SEPARATOR)


def log_account(account: Mapping[str, Any]) -> None:
    logging.info("  ID:       %s", account.get("id"))
    logging.info("  Name:     %s", account.get("name"))
    logging.info("  Type:     %s", account.get("type"))
    if account.get("provider"):
        logging.info("  Provider: %s", account["provider"])
    if account.get("cryptoWalletAddress"):
        logging.info("  Address:  %s", account["cryptoWalletAddress"])
    for asset in account.get("assets") or ():
        network = f" ({asset['network']})" if asset.get("network") else ""
        logging.info(
            "  Asset:    %s %s%s",
            asset.get("availableBalance"),
            asset.get("currency"),
            network,
        )


def find_funding_bank_account(
    accounts: List[Mapping[str, Any]], config: TesserConfig
) -> str:
    """
    Pick the org-level fiat bank account: unmanaged, no tenant, no counterparty.

    Falls back to ``FALLBACK_FUNDING_BANK_ACCOUNT_ID``.
    """
    for account in accounts:
        if (
            account.get("type") == "fiat_bank"
            and account.get("isManaged") is False
            and not account.get("tenantId")
            and not account.get("counterpartyId")
            and account.get("id")
        ):
            logging.info("  Funding bank:   %s (%s)", account.get("name"), account["id"])
            return account["id"]

    if not config.fallback_funding_bank_account_id:
        raise ConfigError(
            "No fiat_bank account found and FALLBACK_FUNDING_BANK_ACCOUNT_ID is not set"
        )
    logging.info(
        "  Funding bank:   (fallback) %s", config.fallback_funding_bank_account_id
    )
    return config.fallback_funding_bank_account_id


def display_current_state(client: TesserClient, config: TesserConfig) -> str:
    """Log every list endpoint and return the funding bank account id."""
    currencies = client.list_currencies()
    logging.info("  Currencies:     %d", len(currencies))
    for currency in currencies:
        logging.info("    - %s (%s)", currency.get("key"), currency.get("name"))

    networks = client.list_networks()
    logging.info("  Networks:       %d", len(networks))
    for network in networks:
        logging.info("    - %s (%s)", network.get("key"), network.get("name"))

    counterparties = client.list_counterparties()
    logging.info("  Counterparties: %d", len(counterparties))
    for counterparty in counterparties:
        logging.info(
            "    - %s  %s  %s",
            counterparty.get("id"),
            counterparty.get("classification"),
            counterparty.get("name"),
        )

    accounts = client.list_accounts()
    logging.info("  Accounts:       %d", len(accounts))
    for account in accounts:
        logging.info(
            "    - %s  type=%s  name=%s",
            account.get("id"),
            account.get("type"),
            account.get("name"),
        )

    tenants = client.list_tenants()
    logging.info("  Tenants:        %d", len(tenants))
    for tenant in tenants:
        logging.info("    - %s  %s", tenant.get("id"), tenant.get("name"))

    payments = client.list_payments()
    logging.info("  Payments:       %d", len(payments))
    for payment in payments:
        logging.info(
            "    - %s  %s  %s %s -> %s %s",
            payment.get("id"),
            payment.get("direction"),
            payment.get("fromAmount"),
            payment.get("fromCurrency"),
            payment.get("toAmount"),
            payment.get("toCurrency"),
        )

    return find_funding_bank_account(accounts, config)


def _with_tenant(body: Dict[str, Any], tenant_id: Optional[str]) -> Dict[str, Any]:
    if tenant_id:
        body["tenant_id"] = tenant_id
    return body


def setup_entities(
    client: TesserClient,
    data: SyntheticData,
    config: TesserConfig,
    tenant_id: Optional[str] = None,
) -> VariantEntities:
    """
    Create a customer with a Circle Mint ledger and a beneficiary with an
    unmanaged Stellar wallet.
    """
    customer_name = data.company_name()
    customer_id = client.create_counterparty(
        _with_tenant(data.business_counterparty(customer_name), tenant_id)
    )

    if data.is_individual():
        beneficiary_body = data.individual_counterparty()
        beneficiary_name = (
            f"{beneficiary_body['individual_first_name']} "
            f"{beneficiary_body['individual_last_name']}"
        )
    else:
        beneficiary_name = data.company_name()
        beneficiary_body = data.business_counterparty(beneficiary_name)
    beneficiary_id = client.create_counterparty(
        _with_tenant(beneficiary_body, tenant_id)
    )

    ledger_name = f"{customer_name}'s Ledger"
    ledger_id = client.create_ledger(
        {
            "name": ledger_name,
            "provider": "CIRCLE_MINT",
            "counterparty_id": customer_id,
        }
    )

    wallet_name = f"{beneficiary_name}'s Wallet"
    wallet_id = client.create_wallet(
        {
            "name": wallet_name,
            "type": "stablecoin_stellar",
            "is_managed": False,
            "wallet_address": config.beneficiary_wallet_address
            or data.stellar_address(),
            "counterparty_id": beneficiary_id,
        }
    )

    return VariantEntities(
        customer_counterparty_id=customer_id,
        customer_counterparty_name=customer_name,
        beneficiary_counterparty_id=beneficiary_id,
        beneficiary_counterparty_name=beneficiary_name,
        ledger_account_id=ledger_id,
        ledger_name=ledger_name,
        wallet_account_id=wallet_id,
        wallet_name=wallet_name,
    )


def create_deposit(
    client: TesserClient,
    executor: RetryExecutor,
    config: TesserConfig,
    from_account_id: str,
    to_account_id: str,
    amount: str,
) -> Tuple[str, Dict[str, Any]]:
    """Create a USD -> USDC deposit and fetch its wiring instructions."""
    deposit_id = executor.execute(
        lambda: client.create_deposit(
            {
                "from_currency": "USD",
                "to_currency": "USDC",
                "from_amount": amount,
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
            }
        ),
        RetryPolicy.from_config(config, "Deposit"),
    )
    instructions = executor.execute(
        lambda: client.get_deposit_instructions(deposit_id),
        RetryPolicy.from_config(config, "Instructions"),
    )
    logging.info("  Deposit instructions: %s", json.dumps(instructions, indent=2))
    return deposit_id, instructions


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def simulate_deposit(
    circle: CircleClient, instructions: Mapping[str, Any], amount: str
) -> Dict[str, Any]:
    """Trigger a Circle sandbox mock wire matching the deposit instructions."""
    to_account = _first_present(instructions, "to_account", "toAccount") or {}
    tracking_ref = _first_present(to_account, "tracking_reference", "trackingRef")
    if tracking_ref is None:
        tracking_ref = (to_account.get("metadata") or {}).get("trackingRef")
    account_number = _first_present(to_account, "bank_account_number", "accountNumber")

    response = circle.mock_wire(
        tracking_ref=tracking_ref, account_number=account_number, amount=amount
    )
    logging.info("  Mock wire response: %s", json.dumps(response, indent=2))
    return response


def create_payment(
    client: TesserClient,
    executor: RetryExecutor,
    config: TesserConfig,
    funding_account_id: str,
    from_account_id: str,
    to_account_id: str,
    amount: str,
) -> str:
    """Create an outbound USDC payment on Stellar and return its id."""
    if config.beneficiary_account_id:
        to_account_id = config.beneficiary_account_id
        logging.info("  Using BENEFICIARY_ACCOUNT_ID: %s", to_account_id)

    payment = executor.execute(
        lambda: client.create_payment(
            {
                "direction": "outbound",
                "funding_account_id": funding_account_id,
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
                "from_amount": amount,
                "from_currency": "USDC",
                "to_currency": "USDC",
                "to_network": "STELLAR",
            }
        ),
        RetryPolicy.from_config(config, "Payment"),
    )
    return payment["id"]


def poll_payment_completion(
    client: TesserClient,
    executor: RetryExecutor,
    payment_id: str,
    predicate: StepPredicate = FIRST_STEP_FINALIZED,
    policy: Optional[RetryPolicy] = None,
) -> Payment:
    poller = PaymentStepPoller(client.get_payment, executor=executor)
    return poller.poll(payment_id, predicate, policy)


def _run_setup(
    client: TesserClient,
    data: SyntheticData,
    config: TesserConfig,
    tenant_id: Optional[str] = None,
) -> VariantEntities:
    logging.info("[Step 3] Creating counterparty, ledger and wallet...")
    entities = setup_entities(client, data, config, tenant_id)
    logging.info(
        "  Customer counterparty:          %s (%s)",
        entities.customer_counterparty_name,
        entities.customer_counterparty_id,
    )
    logging.info(
        "  Beneficiary counterparty:       %s (%s)",
        entities.beneficiary_counterparty_name,
        entities.beneficiary_counterparty_id,
    )
    logging.info(
        "  Customer ledger (Circle):       %s (%s)",
        entities.ledger_name,
        entities.ledger_account_id,
    )
    logging.info(
        "  Beneficiary wallet (unmanaged): %s (%s)",
        entities.wallet_name,
        entities.wallet_account_id,
    )
    return entities


def _run_settlement(
    client: TesserClient,
    circle: CircleClient,
    executor: RetryExecutor,
    config: TesserConfig,
    entities: VariantEntities,
    bank_account_id: str,
    deposit_amount: str,
    payment_amount: str,
    predicate: StepPredicate,
) -> Payment:
    logging.info("[Step 4] Creating deposit (%s USD -> USDC)...", deposit_amount)
    deposit_id, instructions = create_deposit(
        client,
        executor,
        config,
        bank_account_id,
        entities.ledger_account_id,
        deposit_amount,
    )
    logging.info("  Deposit ID: %s", deposit_id)

    logging.info("[Step 5] Simulating deposit via Circle mock wire...")
    simulate_deposit(circle, instructions, deposit_amount)

    logging.info("[Step 6] Creating payment (%s USDC)...", payment_amount)
    payment_id = create_payment(
        client,
        executor,
        config,
        bank_account_id,
        entities.ledger_account_id,
        entities.wallet_account_id,
        payment_amount,
    )
    logging.info("  Payment ID: %s", payment_id)

    logging.info("[Step 7] Polling payment until complete...")
    return poll_payment_completion(
        client,
        executor,
        payment_id,
        predicate,
        RetryPolicy.from_config(config, "Poll"),
    )


def run_demo(
    client: TesserClient,
    circle: CircleClient,
    config: TesserConfig,
    *,
    data: Optional[SyntheticData] = None,
    executor: Optional[RetryExecutor] = None,
    predicate: StepPredicate = FIRST_STEP_FINALIZED,
) -> List[Payment]:
    """
    Full sandbox walkthrough.

    Variant A works at org level, variant B under a freshly created tenant.
    Entities for every enabled variant are created before any money moves.
    """
    data = data or SyntheticData()
    executor = executor or RetryExecutor()

    _banner("Tesser API E2E Demo")
    logging.info("  Token: %s", client.token.masked())

    logging.info("[Step 2] Fetching current state...")
    bank_account_id = display_current_state(client, config)

    deposit_amount = data.deposit_amount()
    payment_amount = data.payment_amount()
    logging.info("  Deposit amount: %s USD", deposit_amount)
    logging.info("  Payment amount: %s USDC", payment_amount)

    variants: List[Tuple[str, VariantEntities]] = []
    if config.run_variant_a:
        _banner("Variant A: Org-level")
        variants.append(("A", _run_setup(client, data, config)))

    if config.run_variant_b:
        _banner("Variant B: Tenant-level")
        logging.info("[Tenant] Creating tenant...")
        tenant_body = data.tenant()
        tenant_id = client.create_tenant(tenant_body)
        logging.info("  Tenant: %s (%s)", tenant_body["business_legal_name"], tenant_id)
        variants.append(("B", _run_setup(client, data, config, tenant_id)))

    payments = []
    for name, entities in variants:
        _banner(f"Variant {name}: Steps 4-7")
        payments.append(
            _run_settlement(
                client,
                circle,
                executor,
                config,
                entities,
                bank_account_id,
                deposit_amount,
                payment_amount,
                predicate,
            )
        )

    _banner("Demo complete")
    return payments


def run_get_account(client: TesserClient, account_id: str) -> Dict[str, Any]:
    logging.info("Getting account %s...", account_id)
    account = client.get_account(account_id)
    log_account(account)
    return account


def run_retry_payment(
    client: TesserClient,
    body: Mapping[str, Any],
    *,
    executor: Optional[RetryExecutor] = None,
    predicate: StepPredicate = FIRST_STEP_FINALIZED,
    policy: Optional[RetryPolicy] = None,
) -> Payment:
    """Create a payment from a caller-supplied body and wait for it."""
    logging.info("Parsed payment body: %s", json.dumps(body, indent=2))
    logging.info("Creating payment...")
    payment_id = client.create_payment(body)["id"]
    logging.info("  Payment ID: %s", payment_id)

    logging.info("Polling payment until complete...")
    policy = policy or RetryPolicy.from_config(client.config, "Poll")
    return poll_payment_completion(
        client, executor or RetryExecutor(), payment_id, predicate, policy
    )


def run_payment_test(
    client: TesserClient,
    config: TesserConfig,
    *,
    data: Optional[SyntheticData] = None,
) -> Dict[str, Any]:
    """Show both configured accounts, then send a small USDC payment between them."""
    data = data or SyntheticData()
    from_account_id = config.require("from_account_id")
    to_account_id = config.require("to_account_id")

    logging.info("Getting source account...")
    log_account(client.get_account(from_account_id))

    logging.info("Getting destination account...")
    log_account(client.get_account(to_account_id))

    amount = data.payment_amount()
    body = {
        "from_currency": "USDC",
        "to_currency": "USDC",
        "from_account_id": from_account_id,
        "source_account_id": from_account_id,
        "to_account_id": to_account_id,
        "from_network": "STELLAR",
        "to_network": "STELLAR",
        "to_amount": None,
        "from_amount": amount,
    }
    logging.info("Creating payment of %s USDC: %s", amount, json.dumps(body, indent=2))
    payment = client.create_payment(body)

    logging.info("  Payment ID:      %s", payment.get("id"))
    logging.info("  Risk status:     %s", payment.get("risk_status"))
    logging.info("  Balance status:  %s", payment.get("balance_status"))
    logging.info("  Expires at:      %s", payment.get("expires_at"))
    return payment


def run_circle_payout(
    circle: CircleClient,
    *,
    data: Optional[SyntheticData] = None,
) -> Dict[str, Any]:
    """Check balance, entity and recipient on Circle, then create a payout."""
    data = data or SyntheticData()
    from_wallet_id = circle.config.require("from_wallet_id")
    to_wallet_id = circle.config.require("to_wallet_id")

    logging.info("Checking balance...")
    balances = circle.get_balances(from_wallet_id)
    for balance in balances.get("available") or ():
        logging.info("  Available: %s %s", balance["amount"], balance["currency"])
    for balance in balances.get("unsettled") or ():
        logging.info("  Unsettled: %s %s", balance["amount"], balance["currency"])

    logging.info("Getting external entity...")
    entity = circle.get_external_entity(from_wallet_id)
    logging.info("  Wallet ID:    %s", entity.get("walletId"))
    for label, key in (
        ("Business", "businessName"),
        ("Identifier", "businessUniqueIdentifier"),
        ("Country", "identifierIssuingCountryCode"),
        ("Compliance", "complianceState"),
    ):
        if entity.get(key):
            logging.info("  %-13s %s", f"{label}:", entity[key])

    logging.info("Checking recipient address...")
    recipient = circle.get_recipient(to_wallet_id)
    for key in ("id", "address", "chain", "currency", "status", "description"):
        logging.info("  %-12s %s", f"{key.capitalize()}:", recipient.get(key))

    amount = data.payment_amount()
    logging.info("Creating payout of %s USD...", amount)
    payout = circle.create_payout(
        source_wallet_id=from_wallet_id, recipient_id=to_wallet_id, amount=amount
    )
    logging.info("  Payout ID: %s", payout.get("id"))
    logging.info("  Status:    %s", payout.get("status"))
    payout_amount = payout.get("amount") or {}
    logging.info(
        "  Amount:    %s %s", payout_amount.get("amount"), payout_amount.get("currency")
    )
    if payout.get("fees"):
        logging.info(
            "  Fees:      %s %s", payout["fees"].get("amount"), payout["fees"].get("currency")
        )
    return payout
