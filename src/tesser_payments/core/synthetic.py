"""
Synthetic counterparties, addresses and amounts for sandbox runs.
"""

from __future__ import annotations

import string
from typing import Any, Dict, Optional

from faker import Faker

__all__ = ["SyntheticData"]

STELLAR_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"


class SyntheticData:
    """
    Generates request bodies filled with plausible fake data.

    Pass ``seed`` to get a reproducible sequence.
    """

    def __init__(self, seed: Optional[int] = None, *, locale: str = "en_US") -> None:
        self.faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

    def company_name(self) -> str:
        return self.faker.company()

    def legal_entity_identifier(self) -> str:
        return self.faker.lexify(
            "?" * 20, letters=string.ascii_uppercase + string.digits
        )

    def stellar_address(self) -> str:
        return "G" + self.faker.lexify("?" * 55, letters=STELLAR_ALPHABET)

    def is_individual(self) -> bool:
        return self.faker.pybool()

    def deposit_amount(self) -> str:
        return f"{self.faker.random.uniform(90, 110):.2f}"

    def payment_amount(self) -> str:
        return f"{self.faker.random.uniform(1, 2):.2f}"

    def business_counterparty(self, name: Optional[str] = None) -> Dict[str, Any]:
        name = name or self.company_name()
        return {
            "classification": "business",
            "business_legal_name": name,
            "business_dba": name,
            "business_address_country": "US",
            "business_street_address1": self.faker.street_address(),
            "business_city": self.faker.city(),
            "business_state": self.faker.state_abbr(),
            "business_postal_code": self.faker.zipcode(),
            "business_legal_entity_identifier": self.legal_entity_identifier(),
        }

    def individual_counterparty(
        self,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            "classification": "individual",
            "individual_first_name": first_name or self.faker.first_name(),
            "individual_last_name": last_name or self.faker.last_name(),
            "individual_address_country": "US",
            "individual_street_address1": self.faker.street_address(),
            "individual_city": self.faker.city(),
            "individual_state": self.faker.state_abbr(),
            "individual_postal_code": self.faker.zipcode(),
        }

    def tenant(self, name: Optional[str] = None) -> Dict[str, Any]:
        name = name or self.company_name()
        return {
            "business_legal_name": name,
            "business_dba": name,
            "business_address_country": "US",
            "business_legal_entity_identifier": self.legal_entity_identifier(),
        }
