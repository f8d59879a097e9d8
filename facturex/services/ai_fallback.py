"""
Fallback IA : sollicité uniquement quand la confiance locale est insuffisante.
L'extracteur est injecté (protocole AiExtractor) ; il ne fait que compléter les champs
absents, et toute erreur de sa part est journalisée puis ignorée.
"""

import logging
from typing import Optional, Protocol

from facturex.models.constants import SEUIL_CONFIANCE_IA
from facturex.models.schemas import ExtractedFields, FieldKind, FieldSource, PartialFields
from facturex.services.consistency import repair
from facturex.services.scoring import to_result

logger = logging.getLogger(__name__)


class AiExtractor(Protocol):
    """Capacité d'extraction IA : texte brut -> champs partiels."""

    def extract(self, text: str) -> PartialFields:
        ...


def merge_ai_fields(local: PartialFields, ai: PartialFields) -> PartialFields:
    """Complète les champs locaux absents (ou à zéro) avec ceux de l'IA, marqués 'ai'."""
    additions = {
        kind.value: ai.get(kind)
        for kind in FieldKind
        if not local.has(kind) and ai.has(kind)
    }
    if additions:
        logger.info("Champs complétés par l'IA : %s", sorted(additions))
    return local.with_values(FieldSource.AI, **additions)


def maybe_invoke(
    text: str,
    partial: ExtractedFields,
    confidence: Optional[int] = None,
    extractor: Optional[AiExtractor] = None,
    threshold: int = SEUIL_CONFIANCE_IA,
) -> ExtractedFields:
    """
    Appelle l'extracteur si la confiance est sous le seuil, fusionne sans jamais écraser
    un champ local, répare puis recalcule le score.
    En cas d'échec de l'IA (timeout, quota, réponse invalide), renvoie partial inchangé.
    """
    confidence = partial.confidence if confidence is None else confidence
    if extractor is None or confidence >= threshold:
        return partial

    logger.info("Confiance %d < %d : appel du fallback IA", confidence, threshold)
    try:
        ai_fields = extractor.extract(text)
    except Exception as e:
        logger.warning("Fallback IA échoué : %s. Résultat local conservé.", e)
        return partial

    merged = merge_ai_fields(partial, ai_fields)
    result = to_result(repair(merged), partial.detected_amounts)
    logger.info("Confiance après fallback IA : %d", result.confidence)
    return result
