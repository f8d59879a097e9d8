"""
Tests unitaires pour le fallback IA (ai_fallback.py).
"""

from datetime import date
from decimal import Decimal

import pytest
from conftest import FakeExtractor

from facturex.models.schemas import FieldKind, FieldSource, PartialFields
from facturex.services.ai_fallback import maybe_invoke, merge_ai_fields
from facturex.services.scoring import to_result

P, A = FieldSource.PATTERN, FieldSource.AI


@pytest.fixture
def local():
    fields = PartialFields().with_values(P, invoice_number="FA-2025-001", amount_ttc=Decimal("120.00"))
    return to_result(fields)


def test_ia_ne_remplace_jamais_un_champ_local(local):
    ai = PartialFields().with_values(
        A, invoice_number="AUTRE", amount_ttc=Decimal("999.00"), due_date=date(2025, 7, 24)
    )
    merged = merge_ai_fields(local, ai)
    assert merged.invoice_number == "FA-2025-001"
    assert merged.amount_ttc == Decimal("120.00")
    assert merged.due_date == date(2025, 7, 24)
    assert merged.source_of(FieldKind.DUE_DATE) is A
    assert merged.source_of(FieldKind.INVOICE_NUMBER) is P


def test_ia_complete_un_champ_a_zero():
    local = PartialFields().with_values(P, vat_amount=Decimal("0"))
    merged = merge_ai_fields(local, PartialFields().with_values(A, vat_amount=Decimal("20.00")))
    assert merged.vat_amount == Decimal("20.00")


def test_appel_sous_le_seuil_puis_nouveau_score(local):
    extractor = FakeExtractor(PartialFields().with_values(A, amount_ht=Decimal("100.00")))
    result = maybe_invoke("texte", local, extractor=extractor)
    assert extractor.calls == ["texte"]
    assert result.amount_ht == Decimal("100.00")
    assert result.vat_amount == Decimal("20.00")
    assert result.confidence > local.confidence


def test_pas_d_appel_au_dessus_du_seuil(local):
    extractor = FakeExtractor(PartialFields().with_values(A, amount_ht=Decimal("100.00")))
    result = maybe_invoke("texte", local, confidence=85, extractor=extractor)
    assert extractor.calls == []
    assert result is local


@pytest.mark.parametrize("error", [TimeoutError("délai dépassé"), ValueError("JSON invalide"), RuntimeError("quota")])
def test_echec_ia_ignore(local, error):
    result = maybe_invoke("texte", local, extractor=FakeExtractor(error=error))
    assert result is local


def test_sans_extracteur(local):
    assert maybe_invoke("texte", local, extractor=None) is local


def test_champs_locaux_conserves_apres_reparation():
    local = to_result(
        PartialFields().with_values(
            P, invoice_number="FA-2025-001", amount_ttc=Decimal("120.00"), vat_rate=Decimal("20")
        )
    )
    ai = PartialFields().with_values(
        A,
        invoice_number="AUTRE",
        amount_ht=Decimal("200.00"),
        amount_ttc=Decimal("999.00"),
        vat_amount=Decimal("50.00"),
    )
    result = maybe_invoke("texte", local, extractor=FakeExtractor(ai))

    for kind in local.filled():
        assert result.get(kind) == local.get(kind)
        assert result.source_of(kind) is P
    assert result.amount_ht == Decimal("100.00")
    assert result.vat_amount == Decimal("20.00")
