"""
Tests unitaires pour le module de validation (validation.py, schemas.py).
"""

from datetime import date
from decimal import Decimal

from facturex.models.schemas import ExtractedFields, FieldKind, FieldSource, PartialFields
from facturex.models.validation import amounts_consistent, amounts_gap, rate_consistent


def _fields(**values) -> PartialFields:
    return PartialFields().with_values(FieldSource.PATTERN, **values)


def test_amounts_consistent_dans_la_tolerance():
    assert amounts_consistent(_fields(amount_ht=Decimal("600"), vat_amount=Decimal("120"), amount_ttc=Decimal("720.02")))
    assert not amounts_consistent(_fields(amount_ht=Decimal("600"), vat_amount=Decimal("120"), amount_ttc=Decimal("720.05")))


def test_amounts_consistent_montant_absent():
    assert amounts_gap(_fields(amount_ht=Decimal("600"))) is None
    assert not amounts_consistent(_fields(amount_ht=Decimal("600"), amount_ttc=Decimal("720")))


def test_rate_consistent():
    base = dict(amount_ht=Decimal("600"), vat_amount=Decimal("120"))
    assert rate_consistent(_fields(**base, vat_rate=Decimal("20")))
    assert rate_consistent(_fields(**base, vat_rate=Decimal("20.9")))
    assert not rate_consistent(_fields(**base, vat_rate=Decimal("10")))
    assert rate_consistent(_fields(vat_rate=Decimal("10")))


def test_with_values_renvoie_une_copie():
    fields = PartialFields()
    updated = fields.with_values(FieldSource.PATTERN, amount_ht=Decimal("10"))
    assert fields.amount_ht is None
    assert updated.source_of(FieldKind.AMOUNT_HT) is FieldSource.PATTERN


def test_with_values_none_retire_la_source():
    fields = _fields(amount_ht=Decimal("10")).with_values(amount_ht=None)
    assert fields.sources == {}


def test_zero_compte_comme_absent():
    fields = _fields(vat_amount=Decimal("0"), invoice_number="  ")
    assert not fields.has(FieldKind.VAT_AMOUNT)
    assert not fields.has(FieldKind.INVOICE_NUMBER)
    assert fields.source_of(FieldKind.VAT_AMOUNT) is None


def test_extracted_fields_to_flat():
    fields = ExtractedFields(
        invoice_number="FA-1",
        amount_ht=Decimal("1000"),
        amount_ttc=Decimal("1055"),
        vat_amount=Decimal("55"),
        vat_rate=Decimal("5.5"),
        invoice_date=date(2025, 6, 24),
        confidence=90,
    )
    assert fields.to_flat() == {
        "invoiceNumber": "FA-1",
        "amountHT": "1000.00",
        "amountTTC": "1055.00",
        "vatRate": 5.5,
        "vatAmount": "55.00",
        "invoiceDate": "2025-06-24",
        "dueDate": None,
        "confidence": 90,
        "detectedAmounts": [],
    }


def test_extracted_fields_taux_entier():
    assert ExtractedFields(vat_rate=Decimal("20.0")).to_flat()["vatRate"] == 20
