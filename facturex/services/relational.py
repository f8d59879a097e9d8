"""
Inférence relationnelle : attribution des rôles HT / TTC / TVA aux montants candidats
d'après leurs seuls rapports numériques, en trois paliers du plus sûr au plus fragile.
"""

import logging
from decimal import Decimal
from itertools import combinations
from typing import Optional, Sequence

from facturex.models.constants import (
    CANDIDAT_TOLERANCE,
    CENTIME,
    RATIO_DERNIER_RECOURS,
    RATIO_TRIPLET,
    TAUX_TVA_ECART_MAX,
    TAUX_TVA_REELS,
)
from facturex.models.schemas import AmountCandidate, FieldSource, PartialFields

logger = logging.getLogger(__name__)


def match_real_vat_rate(raw_rate: Decimal) -> Optional[Decimal]:
    """Taux réel le plus proche de raw_rate, s'il en est à moins d'un demi-point."""
    best = min(TAUX_TVA_REELS, key=lambda rate: abs(rate - raw_rate))
    return best if abs(best - raw_rate) < TAUX_TVA_ECART_MAX else None


def _anchored(higher: Decimal, lower: Decimal, ht: Optional[Decimal], ttc: Optional[Decimal]) -> bool:
    """La paire contient le montant déjà connu (TTC pour le plus grand, HT pour le plus petit)."""
    if higher <= lower:
        return False
    if ttc is not None and abs(higher - ttc) > CANDIDAT_TOLERANCE:
        return False
    return ht is None or abs(lower - ht) <= CANDIDAT_TOLERANCE


def _exact_triplet(values, ht, ttc) -> Optional[PartialFields]:
    low, high = RATIO_TRIPLET
    for i_ttc, i_ht in combinations(range(len(values)), 2):
        higher, lower = values[i_ttc], values[i_ht]
        if not _anchored(higher, lower, ht, ttc) or not low <= higher / lower <= high:
            continue
        vat = higher - lower
        for k, other in enumerate(values):
            if k not in (i_ttc, i_ht) and abs(other - vat) <= CANDIDAT_TOLERANCE:
                logger.info("Triplet exact : HT=%s, TVA=%s, TTC=%s", lower, other, higher)
                return PartialFields().with_values(
                    FieldSource.RELATIONAL, amount_ttc=higher, amount_ht=lower, vat_amount=other
                )
    return None


def _plausible_pair(values, ht, ttc) -> Optional[PartialFields]:
    for higher, lower in combinations(values, 2):
        if not _anchored(higher, lower, ht, ttc):
            continue
        rate = match_real_vat_rate((higher / lower - 1) * 100)
        if rate is not None:
            logger.info("Paire HT/TTC plausible : %s -> %s (taux %s %%)", lower, higher, rate)
            return PartialFields().with_values(
                FieldSource.RELATIONAL, amount_ttc=higher, amount_ht=lower, vat_rate=rate
            )
    return None


def _largest_two(values, ht, ttc) -> Optional[PartialFields]:
    if len(values) < 2 or not _anchored(values[0], values[1], ht, ttc):
        return None
    higher, lower = values[0], values[1]
    low, high = RATIO_DERNIER_RECOURS
    if not low <= higher / lower <= high:
        return None
    logger.info("Dernier recours (deux plus grands montants) : HT=%s, TTC=%s", lower, higher)
    result = PartialFields().with_values(
        FieldSource.RELATIONAL,
        amount_ttc=higher,
        amount_ht=lower,
        vat_amount=(higher - lower).quantize(CENTIME),
    )
    return result.model_copy(update={"low_confidence": True})


def infer_from_candidates(
    candidates: Sequence[AmountCandidate],
    *,
    ht: Optional[Decimal] = None,
    ttc: Optional[Decimal] = None,
) -> PartialFields:
    """
    Cherche dans l'ordre : triplet exact HT/TVA/TTC, paire au ratio de TVA réel,
    puis les deux plus grands montants. Résultat vide si aucun palier n'aboutit.
    ht / ttc : montant déjà connu par motif, que la paire retenue doit contenir.
    """
    values = sorted({c.value for c in candidates if c.value > 0}, reverse=True)
    for tier in (_exact_triplet, _plausible_pair, _largest_two):
        result = tier(values, ht, ttc)
        if result is not None:
            return result
    logger.info("Aucune relation entre les %d montants candidats", len(values))
    return PartialFields()
