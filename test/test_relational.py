"""
Tests unitaires pour l'inférence relationnelle (relational.py).
"""

from decimal import Decimal

import pytest

from facturex.models.schemas import AmountCandidate, FieldKind, FieldSource
from facturex.services.amount_scanner import scan_amounts
from facturex.services.normalization import normalize
from facturex.services.relational import infer_from_candidates, match_real_vat_rate


def _candidates(*values: str) -> list[AmountCandidate]:
    return [AmountCandidate(value=Decimal(v), raw=v, start=0, end=len(v)) for v in values]


@pytest.mark.parametrize(
    "text",
    [
        "1 000,00 € 200,00 € 1 200,00 €",
        "1000,00 EUR / 200,00 EUR / 1200,00 EUR",
        "$1,000.00 $200.00 $1,200.00",
        "1.000,00 € - 200,00 € - 1.200,00 €",
        "Total 1 200,00 € dont 200,00 € et 1 000,00 €",
        "1000 EUR 200 EUR 1200 EUR",
    ],
)
def test_triplet_retrouve_quel_que_soit_le_rendu(text):
    fields = infer_from_candidates(scan_amounts(normalize(text)))
    assert fields.amount_ht == Decimal("1000.00")
    assert fields.amount_ttc == Decimal("1200.00")
    assert fields.vat_amount == Decimal("200.00")
    assert fields.low_confidence is False


def test_triplet_parmi_d_autres_montants():
    fields = infer_from_candidates(_candidates("1500.00", "720.00", "600.00", "120.00", "35.00"))
    assert (fields.amount_ttc, fields.amount_ht, fields.vat_amount) == (
        Decimal("720.00"),
        Decimal("600.00"),
        Decimal("120.00"),
    )


def test_paire_au_taux_reel():
    fields = infer_from_candidates(_candidates("300.00", "250.00"))
    assert fields.amount_ttc == Decimal("300.00")
    assert fields.amount_ht == Decimal("250.00")
    assert fields.vat_rate == Decimal("20")
    assert fields.vat_amount is None
    assert fields.source_of(FieldKind.AMOUNT_TTC) is FieldSource.RELATIONAL


def test_paire_au_taux_reduit():
    fields = infer_from_candidates(_candidates("105.50", "100.00"))
    assert fields.vat_rate == Decimal("5.5")


def test_dernier_recours_deux_plus_grands():
    fields = infer_from_candidates(_candidates("300.00", "200.00"))
    assert fields.amount_ttc == Decimal("300.00")
    assert fields.amount_ht == Decimal("200.00")
    assert fields.vat_amount == Decimal("100.00")
    assert fields.low_confidence is True


@pytest.mark.parametrize("values", [(), ("100.00",), ("100.00", "99.00"), ("500.00", "100.00")])
def test_aucune_relation(values):
    fields = infer_from_candidates(_candidates(*values))
    assert fields.filled() == []


def test_ancre_ht_restreint_les_paires():
    candidates = _candidates("240.00", "200.00", "120.00", "100.00")
    assert infer_from_candidates(candidates).amount_ttc == Decimal("240.00")

    anchored = infer_from_candidates(candidates, ht=Decimal("100.00"))
    assert anchored.amount_ttc == Decimal("120.00")
    assert anchored.amount_ht == Decimal("100.00")


def test_ancre_ttc_sans_paire_compatible():
    fields = infer_from_candidates(_candidates("300.00", "250.00"), ttc=Decimal("999.00"))
    assert fields.filled() == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        (Decimal("20.0"), Decimal("20")),
        (Decimal("19.6"), Decimal("20")),
        (Decimal("5.5"), Decimal("5.5")),
        (Decimal("5.1"), Decimal("5")),
        (Decimal("21.2"), Decimal("21")),
        (Decimal("15"), None),
        (Decimal("50"), None),
    ],
)
def test_match_real_vat_rate(raw, expected):
    assert match_real_vat_rate(raw) == expected
