"""
Logique de validation métier pour les montants d'une facture.
"""

from decimal import Decimal
from typing import Optional

from facturex.models.constants import MONTANT_TOLERANCE, TAUX_TOLERANCE
from facturex.models.schemas import PartialFields


def amounts_gap(data: PartialFields) -> Optional[Decimal]:
    """Écart |HT + TVA - TTC|, ou None si un des trois montants est absent."""
    if data.amount_ht is None or data.vat_amount is None or data.amount_ttc is None:
        return None
    return abs(data.amount_ht + data.vat_amount - data.amount_ttc)


def amounts_consistent(data: PartialFields) -> bool:
    """
    Vérifie que amount_ht + vat_amount == amount_ttc dans la tolérance autorisée.
    Retourne False si un des montants manque : la règle ne peut pas être constatée.
    """
    gap = amounts_gap(data)
    return gap is not None and gap <= MONTANT_TOLERANCE


def rate_gap(data: PartialFields) -> Optional[Decimal]:
    """Écart en points entre vat_rate et vat_amount / amount_ht * 100."""
    if data.vat_rate is None or data.vat_amount is None or not data.amount_ht:
        return None
    return abs(data.vat_rate - data.vat_amount / data.amount_ht * 100)


def rate_consistent(data: PartialFields) -> bool:
    gap = rate_gap(data)
    return gap is None or gap <= TAUX_TOLERANCE
