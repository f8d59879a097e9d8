"""
Fixtures partagées : textes de factures types et settings sans fallback IA.
"""

import pytest

from facturex.core.config import Settings
from facturex.models.schemas import PartialFields

FACTURE_FR = (
    "FACTURE N° FA-2025-001\n"
    "Émise le 24/06/2025\n"
    "Total HT 600,00 €\n"
    "TVA 20% 120,00 €\n"
    "Total TTC 720,00 €\n"
    "Date d'échéance : 24/07/2025\n"
)

INVOICE_EN = (
    "Invoice number: INV-2025-042\n"
    "Invoice date: June 24, 2025\n"
    "Due date: July 24, 2025\n"
    "Subtotal: $1,000.00\n"
    "VAT 20%: $200.00\n"
    "Total amount due: $1,200.00\n"
)


class FakeExtractor:
    """Extracteur IA factice : renvoie des champs fixes ou lève l'erreur donnée."""

    def __init__(self, fields: PartialFields = None, error: Exception = None):
        self.fields = fields or PartialFields()
        self.error = error
        self.calls = []

    def extract(self, text: str) -> PartialFields:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.fields


@pytest.fixture
def facture_fr() -> str:
    return FACTURE_FR


@pytest.fixture
def invoice_en() -> str:
    return INVOICE_EN


@pytest.fixture
def settings_sans_ia() -> Settings:
    return Settings(_env_file=None, openai_api_key=None, ai_fallback_enabled=False)


@pytest.fixture
def settings_ia() -> Settings:
    return Settings(_env_file=None, openai_api_key="sk-test", ai_fallback_enabled=True)
