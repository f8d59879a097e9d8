"""
Tests unitaires pour la réparation de cohérence (consistency.py).
"""

from datetime import date
from decimal import Decimal

import pytest

from facturex.models.schemas import FieldKind, FieldSource, PartialFields
from facturex.models.validation import amounts_consistent, rate_consistent
from facturex.services.consistency import derive_rate, repair

P, R, A = FieldSource.PATTERN, FieldSource.RELATIONAL, FieldSource.AI


def _build(*groups) -> PartialFields:
    """_build((P, {"amount_ht": ...}), (R, {...})) : champs groupés par source."""
    fields = PartialFields()
    for source, values in groups:
        fields = fields.with_values(source, **{k: Decimal(v) if isinstance(v, str) else v for k, v in values.items()})
    return fields


def test_tva_deduite_de_ht_et_ttc():
    fields = repair(_build((P, {"amount_ht": "600.00", "amount_ttc": "720.00"})))
    assert fields.vat_amount == Decimal("120.00")
    assert fields.vat_rate == Decimal("20")
    assert fields.source_of(FieldKind.VAT_AMOUNT) is R


@pytest.mark.parametrize(
    "ht, ttc",
    [("99.99", "119.99"), ("0.01", "0.02"), ("123.45", "148.14"), ("1000.00", "1055.00")],
)
def test_tva_egale_difference_arrondie(ht, ttc):
    fields = repair(_build((P, {"amount_ht": ht, "amount_ttc": ttc})))
    assert fields.vat_amount == (Decimal(ttc) - Decimal(ht)).quantize(Decimal("0.01"))


def test_completion_depuis_ht_et_taux():
    fields = repair(_build((P, {"amount_ht": "100.00", "vat_rate": "20"})))
    assert fields.vat_amount == Decimal("20.00")
    assert fields.amount_ttc == Decimal("120.00")


def test_completion_depuis_ttc_et_taux():
    fields = repair(_build((P, {"amount_ttc": "120.00", "vat_rate": "20"})))
    assert fields.amount_ht == Decimal("100.00")
    assert fields.vat_amount == Decimal("20.00")


def test_completion_depuis_tva_et_taux():
    fields = repair(_build((P, {"vat_amount": "55.00", "vat_rate": "5.5"})))
    assert fields.amount_ht == Decimal("1000.00")
    assert fields.amount_ttc == Decimal("1055.00")


def test_inversion_ht_ttc_meme_priorite():
    fields = repair(_build((P, {"amount_ht": "720.00", "amount_ttc": "600.00"})))
    assert fields.amount_ht == Decimal("600.00")
    assert fields.amount_ttc == Decimal("720.00")
    assert fields.vat_amount == Decimal("120.00")


def test_ht_superieur_ttc_abandon_du_moins_fiable():
    fields = repair(_build((P, {"amount_ht": "720.00"}), (R, {"amount_ttc": "600.00"})))
    assert fields.amount_ht == Decimal("720.00")
    assert fields.amount_ttc is None
    assert fields.source_of(FieldKind.AMOUNT_TTC) is None


def test_relation_violee_recalcule_le_moins_prioritaire():
    fields = repair(
        _build((P, {"amount_ht": "600.00", "amount_ttc": "720.00"}), (R, {"vat_amount": "100.00"}))
    )
    assert fields.vat_amount == Decimal("120.00")
    assert amounts_consistent(fields)


def test_relation_violee_egalite_recalcule_la_tva():
    fields = repair(_build((P, {"amount_ht": "600.00", "amount_ttc": "720.00", "vat_amount": "100.00"})))
    assert fields.amount_ht == Decimal("600.00")
    assert fields.amount_ttc == Decimal("720.00")
    assert fields.vat_amount == Decimal("120.00")


def test_relation_violee_ht_moins_prioritaire():
    fields = repair(
        _build((P, {"amount_ttc": "720.00", "vat_amount": "100.00"}), (R, {"amount_ht": "600.00"}))
    )
    assert fields.amount_ht == Decimal("620.00")
    assert fields.amount_ttc == Decimal("720.00")


def test_taux_incoherent_recalcule():
    fields = repair(
        _build((P, {"amount_ht": "600.00", "amount_ttc": "720.00", "vat_amount": "120.00", "vat_rate": "10"}))
    )
    assert fields.vat_rate == Decimal("20")
    assert rate_consistent(fields)


def test_taux_plus_fiable_que_tva_et_ttc():
    fields = repair(
        _build(
            (P, {"amount_ht": "600.00", "vat_rate": "20"}),
            (A, {"vat_amount": "100.00", "amount_ttc": "700.00"}),
        )
    )
    assert fields.vat_amount == Decimal("120.00")
    assert fields.amount_ttc == Decimal("720.00")
    assert fields.vat_rate == Decimal("20")


def test_champ_motif_jamais_ecrase_par_ia():
    fields = repair(
        _build((P, {"amount_ht": "600.00", "vat_amount": "120.00"}), (A, {"amount_ttc": "800.00"}))
    )
    assert fields.amount_ht == Decimal("600.00")
    assert fields.vat_amount == Decimal("120.00")
    assert fields.amount_ttc == Decimal("720.00")
    assert fields.source_of(FieldKind.AMOUNT_TTC) is R


def test_echeance_anterieure_abandonnee():
    fields = repair(
        _build((P, {"invoice_date": date(2025, 7, 1)}), (R, {"due_date": date(2025, 6, 1)}))
    )
    assert fields.invoice_date == date(2025, 7, 1)
    assert fields.due_date is None


def test_repair_est_pure():
    original = _build((P, {"amount_ht": "600.00", "amount_ttc": "720.00"}))
    repaired = repair(original)
    assert original.vat_amount is None
    assert repaired is not original
    assert repair(PartialFields()) == PartialFields()


def test_derive_rate():
    assert derive_rate(Decimal("100"), Decimal("20")) == Decimal("20")
    assert derive_rate(Decimal("100"), Decimal("5.5")) == Decimal("5.5")
    assert derive_rate(Decimal("100"), Decimal("7.3")) == Decimal("7.3")


def test_taux_et_ttc_fiables_recalculent_ht_et_tva():
    fields = repair(
        _build(
            (P, {"amount_ttc": "120.00", "vat_rate": "20"}),
            (A, {"amount_ht": "70.00", "vat_amount": "50.00"}),
        )
    )
    assert fields.amount_ttc == Decimal("120.00")
    assert fields.vat_rate == Decimal("20")
    assert fields.amount_ht == Decimal("100.00")
    assert fields.vat_amount == Decimal("20.00")
    assert fields.source_of(FieldKind.AMOUNT_HT) is R
