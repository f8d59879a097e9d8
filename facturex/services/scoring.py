"""
Fusion des résultats partiels et calcul du score de confiance.
"""

import logging
from typing import Iterable

from facturex.models.schemas import (
    AMOUNT_FIELDS,
    DATE_FIELDS,
    AmountCandidate,
    ExtractedFields,
    FieldKind,
    FieldSource,
    PartialFields,
)
from facturex.models.validation import amounts_consistent
from facturex.services.consistency import repair

logger = logging.getLogger(__name__)

WEIGHTS: dict[FieldKind, dict[FieldSource, int]] = {
    FieldKind.INVOICE_NUMBER: {FieldSource.PATTERN: 20, FieldSource.RELATIONAL: 10, FieldSource.AI: 10},
    FieldKind.AMOUNT_HT: {FieldSource.PATTERN: 30, FieldSource.RELATIONAL: 20, FieldSource.AI: 15},
    FieldKind.AMOUNT_TTC: {FieldSource.PATTERN: 30, FieldSource.RELATIONAL: 20, FieldSource.AI: 15},
    FieldKind.VAT_AMOUNT: {FieldSource.PATTERN: 20, FieldSource.RELATIONAL: 15, FieldSource.AI: 15},
    FieldKind.VAT_RATE: {FieldSource.PATTERN: 10, FieldSource.RELATIONAL: 8, FieldSource.AI: 8},
    FieldKind.INVOICE_DATE: {FieldSource.PATTERN: 15, FieldSource.RELATIONAL: 10, FieldSource.AI: 10},
    FieldKind.DUE_DATE: {FieldSource.PATTERN: 15, FieldSource.RELATIONAL: 10, FieldSource.AI: 10},
}

# HT / TTC issus du dernier recours relationnel (deux plus grands montants)
LAST_RESORT_WEIGHT = 15
CONSISTENCY_BONUS = 20
MAX_SCORE = 100


def score(fields: PartialFields) -> int:
    """
    Somme des poids des champs renseignés selon leur source, +20 si HT, TTC et TVA
    sont présents et cohérents (sauf dernier recours), plafonnée à 100.
    """
    total = 0
    for kind in fields.filled():
        source = fields.source_of(kind)
        if source is None:
            continue
        weight = WEIGHTS[kind].get(source, 0)
        if (
            fields.low_confidence
            and source is FieldSource.RELATIONAL
            and kind in (FieldKind.AMOUNT_HT, FieldKind.AMOUNT_TTC)
        ):
            weight = LAST_RESORT_WEIGHT
        total += weight
    if not fields.low_confidence and amounts_consistent(fields):
        total += CONSISTENCY_BONUS
    return min(total, MAX_SCORE)


def to_result(fields: PartialFields, detected_amounts: Iterable[AmountCandidate] = ()) -> ExtractedFields:
    """Enregistrement final : champs, sources, score recalculé et montants candidats."""
    values = {name: getattr(fields, name) for name in PartialFields.model_fields}
    return ExtractedFields(**values, confidence=score(fields), detected_amounts=list(detected_amounts))


def merge(
    pattern: PartialFields,
    relational: PartialFields,
    dates: PartialFields,
    detected_amounts: Iterable[AmountCandidate] = (),
) -> ExtractedFields:
    """
    Fusionne champ par champ : motif d'abord, puis inférence relationnelle pour les montants
    et taux, résolveur pour les dates. Le résultat est réparé puis noté.
    """
    merged = pattern
    fallback_by_kind = {kind: relational for kind in AMOUNT_FIELDS + (FieldKind.VAT_RATE,)}
    fallback_by_kind.update({kind: dates for kind in DATE_FIELDS})

    used_relational = False
    for kind, other in fallback_by_kind.items():
        if merged.has(kind) or not other.has(kind):
            continue
        merged = merged.with_values(other.source_of(kind) or FieldSource.RELATIONAL, **{kind.value: other.get(kind)})
        used_relational = used_relational or other is relational

    if used_relational and relational.low_confidence:
        merged = merged.model_copy(update={"low_confidence": True})

    repaired = repair(merged)
    result = to_result(repaired, detected_amounts)
    logger.info(
        "Fusion : %d champ(s), confiance %d%s",
        len(result.filled()),
        result.confidence,
        " (dernier recours)" if result.low_confidence else "",
    )
    return result
