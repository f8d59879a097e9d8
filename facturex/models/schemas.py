"""
Schémas Pydantic partagés par les étapes du pipeline et par l'API.
PartialFields circule (immuable) entre les étapes ; ExtractedFields est le résultat final.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class Language(str, Enum):
    FR = "fr"
    EN = "en"

    @property
    def other(self) -> "Language":
        return Language.EN if self is Language.FR else Language.FR


class FieldSource(str, Enum):
    """Origine d'un champ renseigné, utilisée pour la pondération et l'arbitrage."""

    PATTERN = "pattern"
    RELATIONAL = "relational"
    AI = "ai"

    @property
    def priority(self) -> int:
        return _PRIORITIES[self]


_PRIORITIES = {FieldSource.PATTERN: 3, FieldSource.RELATIONAL: 2, FieldSource.AI: 1}


class FieldKind(str, Enum):
    """Champs cibles ; la valeur est le nom de l'attribut dans PartialFields."""

    INVOICE_NUMBER = "invoice_number"
    AMOUNT_HT = "amount_ht"
    AMOUNT_TTC = "amount_ttc"
    VAT_RATE = "vat_rate"
    VAT_AMOUNT = "vat_amount"
    INVOICE_DATE = "invoice_date"
    DUE_DATE = "due_date"


AMOUNT_FIELDS = (FieldKind.AMOUNT_HT, FieldKind.AMOUNT_TTC, FieldKind.VAT_AMOUNT)
DATE_FIELDS = (FieldKind.INVOICE_DATE, FieldKind.DUE_DATE)


class AmountCandidate(BaseModel):
    """Nombre du texte pressenti comme montant, sans rôle sémantique attribué."""

    model_config = ConfigDict(frozen=True)

    value: Decimal = Field(..., gt=0, lt=1_000_000, description="Montant à 2 décimales")
    raw: str = Field(..., description="Numéral tel que lu dans le texte")
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)


class PartialFields(BaseModel):
    """
    Résultat partiel d'une étape. Immuable : chaque étape renvoie une nouvelle
    instance via with_values() plutôt que de modifier celle reçue.
    """

    model_config = ConfigDict(frozen=True)

    invoice_number: Optional[str] = None
    amount_ht: Optional[Decimal] = None
    amount_ttc: Optional[Decimal] = None
    vat_rate: Optional[Decimal] = None
    vat_amount: Optional[Decimal] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    sources: dict[FieldKind, FieldSource] = Field(default_factory=dict)
    low_confidence: bool = False
    """True si les montants proviennent du dernier recours relationnel."""

    def get(self, kind: FieldKind):
        return getattr(self, kind.value)

    def has(self, kind: FieldKind) -> bool:
        value = self.get(kind)
        if value is None:
            return False
        if isinstance(value, Decimal):
            return value != 0
        if isinstance(value, str):
            return bool(value.strip())
        return True

    def source_of(self, kind: FieldKind) -> Optional[FieldSource]:
        return self.sources.get(kind) if self.has(kind) else None

    def with_values(self, source: Optional[FieldSource] = None, **values) -> "PartialFields":
        """
        Retourne une copie où les champs donnés sont remplacés.
        Un champ mis à None perd sa source ; sinon la source donnée lui est associée.
        """
        sources = dict(self.sources)
        for name, value in values.items():
            kind = FieldKind(name)
            if value is None:
                sources.pop(kind, None)
            elif source is not None:
                sources[kind] = source
        return self.model_copy(update={**values, "sources": sources})

    def filled(self) -> list[FieldKind]:
        return [kind for kind in FieldKind if self.has(kind)]


class ExtractedFields(PartialFields):
    """
    Enregistrement final renvoyé à l'appelant, sérialisable en clé/valeur plate
    (montants en chaînes à 2 décimales, dates YYYY-MM-DD).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    amount_ht: Optional[Decimal] = Field(None, alias="amountHT")
    amount_ttc: Optional[Decimal] = Field(None, alias="amountTTC")
    confidence: int = Field(0, ge=0, le=100)
    detected_amounts: list[AmountCandidate] = Field(default_factory=list)
    sources: dict[FieldKind, FieldSource] = Field(default_factory=dict, exclude=True)
    low_confidence: bool = Field(False, exclude=True)

    @field_serializer("amount_ht", "amount_ttc", "vat_amount")
    def _serialize_amount(self, value: Optional[Decimal]) -> Optional[str]:
        return None if value is None else f"{value:.2f}"

    @field_serializer("vat_rate")
    def _serialize_rate(self, value: Optional[Decimal]):
        if value is None:
            return None
        if value == value.to_integral_value():
            return int(value)
        return float(value)

    @field_serializer("detected_amounts")
    def _serialize_candidates(self, value: list[AmountCandidate]) -> list[str]:
        return [f"{candidate.value:.2f}" for candidate in value]

    def to_flat(self) -> dict:
        """Dictionnaire JSON-compatible : invoiceNumber, amountHT, ..., detectedAmounts."""
        return self.model_dump(mode="json", by_alias=True)
