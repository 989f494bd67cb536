"""
HTTP clients for the Tesser API and the Circle sandbox.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

import requests

from .config import CircleConfig, TesserConfig
from .polling import Payment

if TYPE_CHECKING:
    from .auth import AccessToken

__all__ = [
    "ApiError",
    "CircleClient",
    "TesserClient",
]


class ApiError(RuntimeError):
    """Raised for non-2xx responses and undecodable or malformed response bodies."""

    def __init__(
        self,
        method: str,
        url: str,
        status_code: int,
        response_text: str,
        request_body: Optional[str] = None,
    ) -> None:
        message = f"{method} {url} failed ({status_code})"
        if request_body is not None:
            message += f"\n  Request body: {request_body}"
        message += f"\n  Response:     {response_text}"
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_text = response_text
        self.request_body = request_body


def _decode_json(method: str, url: str, response: requests.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise ApiError(
            method,
            url,
            response.status_code,
            f"Failed to parse JSON: {response.text}",
        ) from exc


def _dig(
    method: str,
    url: str,
    response: requests.Response,
    payload: Any,
    pick: Sequence[str],
    require: Sequence[str],
) -> Any:
    """Walk ``pick`` into the decoded body and check ``require`` keys are present."""
    value = payload
    path: List[str] = []
    for key in pick:
        path.append(key)
        if not isinstance(value, Mapping) or key not in value:
            break
        value = value[key]
    else:
        missing = [
            key for key in require if not isinstance(value, Mapping) or key not in value
        ]
        if not missing:
            return value
        path.append(missing[0])
    raise ApiError(
        method,
        url,
        response.status_code,
        f"Unexpected response shape, missing '{'.'.join(path)}': {response.text}",
    )


def _request_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    headers: Mapping[str, str],
    timeout: int,
    body: Optional[Any] = None,
    pick: Sequence[str] = (),
    require: Sequence[str] = (),
) -> Any:
    serialized = json.dumps(body) if body is not None else None
    response = session.request(
        method, url, headers=dict(headers), data=serialized, timeout=timeout
    )
    if response.status_code >= 400:
        raise ApiError(method, url, response.status_code, response.text, serialized)
    payload = _decode_json(method, url, response)
    if not pick and not require:
        return payload
    return _dig(method, url, response, payload, pick, require)


class TesserClient:
    """
    Thin wrapper around the Tesser REST endpoints.

    The access token is fixed for the lifetime of the client; authenticate
    again and build a new client to refresh it. The typed helpers raise
    :class:`ApiError` when a 2xx body lacks the keys they read.
    """

    def __init__(
        self,
        config: TesserConfig,
        token: "AccessToken",
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.token = token
        self.session = session or requests.Session()

    @classmethod
    def connect(
        cls,
        config: TesserConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> "TesserClient":
        from .auth import authenticate

        session = session or requests.Session()
        return cls(config, authenticate(session, config), session=session)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": self.token.authorization_header,
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        *,
        pick: Sequence[str] = (),
        require: Sequence[str] = (),
    ) -> Any:
        url = f"{self.config.base_url}{path}"
        logging.debug("%s %s", method, url)
        return _request_json(
            self.session,
            method,
            url,
            headers=self._headers(),
            timeout=self.config.request_timeout_seconds,
            body=body,
            pick=pick,
            require=require,
        )

    def get(self, path: str, **shape: Sequence[str]) -> Any:
        """``shape`` takes the ``pick`` and ``require`` key paths checked on the body."""
        return self._request("GET", path, **shape)

    def post(self, path: str, body: Any, **shape: Sequence[str]) -> Any:
        return self._request("POST", path, body, **shape)

    def patch(self, path: str, body: Any, **shape: Sequence[str]) -> Any:
        return self._request("PATCH", path, body, **shape)

    # Reference data ------------------------------------------------------

    def list_currencies(self) -> List[Dict[str, Any]]:
        return self.get("/v1/currencies", pick=("data",))

    def list_networks(self) -> List[Dict[str, Any]]:
        return self.get("/v1/networks", pick=("data",))

    # Entities ------------------------------------------------------------

    def list_counterparties(self) -> List[Dict[str, Any]]:
        return self.get("/v1/entities/counterparties", pick=("data",))

    def create_counterparty(self, body: Mapping[str, Any]) -> str:
        return self.post("/v1/entities/counterparties", body, pick=("data", "id"))

    def list_tenants(self) -> List[Dict[str, Any]]:
        return self.get("/v1/entities/tenants", pick=("data",))

    def create_tenant(self, body: Mapping[str, Any]) -> str:
        return self.post(
            "/v1/entities/tenants", body, pick=("data", "tenant", "id")
        )

    # Accounts ------------------------------------------------------------

    def list_accounts(self) -> List[Dict[str, Any]]:
        return self.get("/v1/accounts", pick=("data",))

    def get_account(self, account_id: str) -> Dict[str, Any]:
        return self.get(f"/v1/accounts/{account_id}", pick=("data",))

    def create_ledger(self, body: Mapping[str, Any]) -> str:
        return self.post("/v1/accounts/ledgers", body, pick=("data", "id"))

    def create_wallet(self, body: Mapping[str, Any]) -> str:
        return self.post("/v1/accounts/wallets", body, pick=("data", "id"))

    # Treasury ------------------------------------------------------------

    def create_deposit(self, body: Mapping[str, Any]) -> str:
        return self.post("/v1/treasury/deposits", body, pick=("data", "id"))

    def get_deposit_instructions(self, deposit_id: str) -> Dict[str, Any]:
        return self.get(
            f"/v1/treasury/deposits/{deposit_id}/instructions", pick=("data",)
        )

    # Payments ------------------------------------------------------------

    def list_payments(self) -> List[Dict[str, Any]]:
        return self.get("/v1/payments", pick=("data",))

    def create_payment(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        """Return the created payment object; it always carries an ``id``."""
        return self.post("/v1/payments", body, pick=("data",), require=("id",))

    def get_payment(self, payment_id: str) -> Payment:
        return Payment.from_response(self.get(f"/v1/payments/{payment_id}"))


class CircleClient:
    """
    API-key client for the Circle sandbox, used to move fiat in and out.
    """

    def __init__(
        self,
        config: CircleConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        *,
        pick: Sequence[str] = (),
    ) -> Any:
        url = f"{self.config.base_url}{path}"
        logging.info("%s %s", method, url)
        return _request_json(
            self.session,
            method,
            url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.config.request_timeout_seconds,
            body=body,
            pick=pick,
        )

    def get(self, path: str, *, pick: Sequence[str] = ()) -> Any:
        return self._request("GET", path, pick=pick)

    def post(self, path: str, body: Any, *, pick: Sequence[str] = ()) -> Any:
        return self._request("POST", path, body, pick=pick)

    def get_balances(self, wallet_id: str) -> Dict[str, Any]:
        return self.get(
            f"/v1/businessAccount/balances?walletId={wallet_id}", pick=("data",)
        )

    def get_external_entity(self, wallet_id: str) -> Dict[str, Any]:
        return self.get(f"/v1/externalEntities/{wallet_id}", pick=("data",))

    def get_recipient(self, recipient_id: str) -> Dict[str, Any]:
        return self.get(f"/v1/addressBook/recipients/{recipient_id}", pick=("data",))

    def create_payout(
        self,
        *,
        source_wallet_id: str,
        recipient_id: str,
        amount: str,
        currency: str = "USD",
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "idempotencyKey": idempotency_key or str(uuid.uuid4()),
            "source": {"type": "wallet", "id": source_wallet_id},
            "destination": {"type": "address_book", "id": recipient_id},
            "amount": {"amount": amount, "currency": currency},
        }
        return self.post("/v1/payouts", body, pick=("data",))

    def mock_wire(
        self,
        *,
        tracking_ref: str,
        account_number: str,
        amount: str,
        currency: str = "USD",
    ) -> Dict[str, Any]:
        """Simulate an incoming wire to the sandbox bank account."""
        body = {
            "trackingRef": tracking_ref,
            "amount": {"amount": amount, "currency": currency},
            "beneficiaryBank": {"accountNumber": account_number},
        }
        return self.post("/v1/mocks/payments/wire", body)
