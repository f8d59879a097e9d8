"""
Client OpenAI pour le fallback IA : extraction structurée des champs facture depuis le texte brut.
Utilise les Structured Outputs (response_format) pour obtenir du JSON conforme au schéma.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

from openai import OpenAI
from pydantic import BaseModel, field_validator

from facturex.core.config import Settings, get_settings
from facturex.models.constants import CENTIME, MONTANT_MAX, MONTANT_MIN, TAUX_TVA_MAX
from facturex.models.schemas import FieldKind, FieldSource, PartialFields

logger = logging.getLogger(__name__)


def _load_system_prompt(prompt_version: str = "v1") -> str:
    """
    Charge le prompt système depuis un fichier.
    Permet de gérer plusieurs versions de prompts (v1, v2, ...).

    Args:
        prompt_version: Version du prompt (ex: "v1"). Défaut: "v1"

    Returns:
        Contenu du fichier prompt, ou prompt par défaut si fichier non trouvé.
    """
    prompt_file = Path(__file__).parent.parent / "prompt" / f"prompt_{prompt_version}.txt"

    if prompt_file.exists():
        try:
            content = prompt_file.read_text(encoding="utf-8").strip()
            logger.info("Prompt système chargé depuis %s", prompt_file)
            return content
        except OSError as e:
            logger.warning("Erreur lecture fichier prompt %s: %s. Utilisation prompt par défaut.", prompt_file, e)

    return "Extrait les champs de cette facture au format JSON demandé."


SYSTEM_PROMPT = _load_system_prompt("v1")


class AiInvoiceFields(BaseModel):
    """Réponse brute du modèle, avant filtrage des valeurs implausibles."""

    invoice_number: Optional[str] = None
    amount_ht: Optional[Decimal] = None
    amount_ttc: Optional[Decimal] = None
    vat_rate: Optional[Decimal] = None
    vat_amount: Optional[Decimal] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None

    @field_validator("amount_ht", "amount_ttc", "vat_amount")
    @classmethod
    def _plausible_amount(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        if value is None or not MONTANT_MIN < value < MONTANT_MAX:
            return None
        return value.quantize(CENTIME)

    @field_validator("vat_rate")
    @classmethod
    def _plausible_rate(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        if value is None or not 0 < value <= TAUX_TVA_MAX:
            return None
        return value

    def to_partial(self) -> PartialFields:
        values = {kind.value: getattr(self, kind.value) for kind in FieldKind}
        found = {name: value for name, value in values.items() if value is not None}
        return PartialFields().with_values(FieldSource.AI, **found)


class OpenAIInvoiceExtractor:
    """Implémentation OpenAI du protocole AiExtractor (un seul essai, délai borné)."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None):
        self.settings = settings or get_settings()
        self.client = client or OpenAI(
            api_key=self.settings.openai_api_key,
            timeout=self.settings.ai_timeout_seconds,
            max_retries=0,
        )

    def extract(self, text: str) -> PartialFields:
        """
        Envoie le texte (tronqué à ai_max_chars) au modèle et retourne les champs trouvés, marqués 'ai'.
        Lève en cas d'échec de l'API, de réponse vide ou de parsing ; l'appelant décide quoi en faire.
        """
        excerpt = text[: self.settings.ai_max_chars]
        response = self.client.chat.completions.create(
            model=self.settings.llm_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Extrais les champs de cette facture :\n\n{excerpt}",
                },
            ],
            response_format={"type": "json_schema", "json_schema": _invoice_json_schema()},
        )

        choice = response.choices[0]
        if not choice.message.content:
            raise ValueError("Réponse LLM vide")

        data = json.loads(choice.message.content.strip())
        fields = AiInvoiceFields.model_validate(data).to_partial()
        logger.info("Réponse %s : %d champ(s)", self.settings.llm_model, len(fields.filled()))
        return fields


def _invoice_json_schema() -> dict:
    """Retourne le schéma JSON pour Structured Output aligné sur les sept champs cibles."""
    properties = {
        "invoice_number": {"type": ["string", "null"]},
        "amount_ht": {"type": ["number", "null"]},
        "amount_ttc": {"type": ["number", "null"]},
        "vat_rate": {"type": ["number", "null"]},
        "vat_amount": {"type": ["number", "null"]},
        "invoice_date": {"type": ["string", "null"], "description": "YYYY-MM-DD"},
        "due_date": {"type": ["string", "null"], "description": "YYYY-MM-DD"},
    }
    return {
        "name": "invoice_fields",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": properties,
            "required": list(properties),
            "additionalProperties": False,
        },
    }
