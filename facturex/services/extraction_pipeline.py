"""
Orchestration du pipeline d'extraction sur le texte d'une facture.
Étape 1 : normalisation et détection de la langue.
Étape 2 : montants candidats, motifs étiquetés, inférence relationnelle, dates.
Étape 3 : fusion, réparation de cohérence et score de confiance.
Étape 4 (fallback) : si la confiance reste sous le seuil, complétion par l'IA.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from facturex.core.config import Settings, get_settings
from facturex.models.constants import EmptyInputError
from facturex.models.schemas import ExtractedFields, FieldKind, Language, PartialFields
from facturex.services.ai_fallback import AiExtractor, maybe_invoke
from facturex.services.amount_scanner import scan_amounts
from facturex.services.dates import resolve_dates
from facturex.services.document_type import detect_document_type
from facturex.services.field_matcher import match_fields
from facturex.services.llm_client import OpenAIInvoiceExtractor
from facturex.services.normalization import detect_language, normalize
from facturex.services.relational import infer_from_candidates
from facturex.services.scoring import merge

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Résultat du pipeline avec le contexte du document et l'indicateur de revue manuelle."""

    data: ExtractedFields
    language: Language
    document_type: str = "unknown"
    needs_human_review: bool = False
    """True si la confiance finale reste sous le seuil, ou si la TVA est nulle."""
    error_message: Optional[str] = None


def _default_extractor(settings: Settings) -> Optional[AiExtractor]:
    if not settings.ai_available:
        logger.info("Fallback IA indisponible (désactivé ou OPENAI_API_KEY absente)")
        return None
    return OpenAIInvoiceExtractor(settings)


def run_extraction_pipeline(
    text: str,
    *,
    settings: Optional[Settings] = None,
    ai_extractor: Optional[AiExtractor] = None,
) -> ExtractedFields:
    """
    Extrait numéro, montants HT/TTC/TVA, taux et dates du texte d'une facture.
    Lève EmptyInputError si le texte normalisé est vide ; aucune autre erreur n'est propagée.
    """
    settings = settings or get_settings()
    normalized = normalize(text)
    if not normalized:
        raise EmptyInputError("Texte vide après normalisation : aucune extraction possible.")

    language = detect_language(normalized)
    candidates = scan_amounts(normalized)
    pattern = match_fields(normalized, language)

    relational = PartialFields()
    if not (pattern.has(FieldKind.AMOUNT_HT) and pattern.has(FieldKind.AMOUNT_TTC)):
        relational = infer_from_candidates(candidates, ht=pattern.amount_ht, ttc=pattern.amount_ttc)

    dates = resolve_dates(normalized, language)
    result = merge(pattern, relational, dates, candidates)
    logger.info("Extraction locale (%s) : confiance %d", language.value, result.confidence)

    if not settings.ai_fallback_enabled or result.confidence >= settings.ai_confidence_threshold:
        return result
    extractor = ai_extractor or _default_extractor(settings)
    return maybe_invoke(normalized, result, extractor=extractor, threshold=settings.ai_confidence_threshold)


def analyze_document(
    text: str,
    *,
    settings: Optional[Settings] = None,
    ai_extractor: Optional[AiExtractor] = None,
) -> ExtractionResult:
    """Pipeline complet plus langue, type de document et besoin de revue manuelle."""
    settings = settings or get_settings()
    data = run_extraction_pipeline(text, settings=settings, ai_extractor=ai_extractor)

    normalized = normalize(text)
    language = detect_language(normalized)
    document_type = detect_document_type(normalized, language)

    needs_review = False
    error_message = None
    if data.confidence < settings.ai_confidence_threshold:
        needs_review = True
        error_message = f"Confiance insuffisante ({data.confidence}/100)"
    if data.vat_amount is not None and data.vat_amount == 0:
        # TVA nulle : autoliquidation, exonération ou cas spécial
        logger.info("TVA = 0 détectée. Revue manuelle recommandée.")
        needs_review = True

    return ExtractionResult(
        data=data,
        language=language,
        document_type=document_type,
        needs_human_review=needs_review,
        error_message=error_message,
    )
