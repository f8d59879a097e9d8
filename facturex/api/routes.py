"""
Routes API pour l'extraction de données facture.
"""

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from facturex.core.config import Settings, get_settings
from facturex.models.constants import EmptyInputError
from facturex.models.schemas import ExtractedFields, FieldKind, FieldSource
from facturex.services.extraction_pipeline import analyze_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["extract"])

# Délai de paiement supposé lorsque l'échéance est absente (sur demande de l'appelant)
DEFAULT_PAYMENT_TERM = timedelta(days=30)


class ExtractRequest(BaseModel):
    """Corps de la requête /extract : texte déjà extrait du PDF."""

    text: str = Field(..., description="Texte brut de la facture")
    estimate_due_date: bool = Field(False, description="Estimer l'échéance à date de facture + 30 jours si absente")


class ExtractResponse(BaseModel):
    """Réponse de l'endpoint /extract."""

    data: dict[str, Any] | None = Field(None, description="Champs extraits (clé/valeur plate)")
    language: str | None = Field(None, description="Langue détectée : fr ou en")
    document_type: str = Field("unknown", description="invoice, quote, delivery_note ou unknown")
    needs_human_review: bool = Field(False, description="True si extraction incertaine")
    error_message: str | None = Field(None, description="Motif lorsque needs_human_review=True")


def estimate_due_date(fields: ExtractedFields) -> ExtractedFields:
    """Échéance absente : date de facture + 30 jours. Ne modifie pas une échéance existante."""
    if fields.due_date is not None or fields.invoice_date is None:
        return fields
    estimated = fields.invoice_date + DEFAULT_PAYMENT_TERM
    logger.info("Échéance estimée à %s (facture + 30 jours)", estimated)
    return fields.with_values(FieldSource.RELATIONAL, **{FieldKind.DUE_DATE.value: estimated})


@router.post(
    "/extract",
    response_model=ExtractResponse,
    summary="Extraire les champs d'une facture",
    description="Accepte le texte d'une facture (FR/EN), renvoie numéro, montants HT/TVA/TTC, taux, dates et confiance.",
)
def extract(request: ExtractRequest, settings: Settings = Depends(get_settings)) -> ExtractResponse:
    """
    Lance le pipeline d'extraction (motifs + inférence + réparation + fallback IA)
    sur le texte reçu et retourne l'enregistrement plat.
    """
    try:
        result = analyze_document(request.text, settings=settings)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    data = result.data
    if request.estimate_due_date:
        data = estimate_due_date(data)

    return ExtractResponse(
        data=data.to_flat(),
        language=result.language.value,
        document_type=result.document_type,
        needs_human_review=result.needs_human_review,
        error_message=result.error_message,
    )
