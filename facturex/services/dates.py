"""
Résolution des dates : repérage de tous les jetons de date, étiquetage contextuel
(émission / échéance) puis arbitrage chronologique.
Les jetons sont localisés par expressions régulières et convertis par dateparser.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

import dateparser

from facturex.models.constants import FENETRE_CONTEXTE_DATE
from facturex.models.schemas import FieldSource, Language, PartialFields

logger = logging.getLogger(__name__)

INVOICE_TERMS = {
    Language.FR: re.compile(r"date|[ée]mis|cr[ée]{2}|factur"),
    Language.EN: re.compile(r"date|issued|created|invoice"),
}
DUE_TERMS = {
    Language.FR: re.compile(r"[ée]ch[ée]ance|due|paie|r[èe]glement|paiement|limite"),
    Language.EN: re.compile(r"due|payment|deadline|pay\s+by|payable"),
}

_DMY = re.compile(r"(?<!\d)\d{1,2}[/.-]\d{1,2}[/.-](?:\d{4}|\d{2})(?!\d)")
_YMD = re.compile(r"(?<!\d)\d{4}[/.-]\d{1,2}[/.-]\d{1,2}(?!\d)")
# "24 juin 2025", "1er février 25", "24-Jun-2025"
_DAY_MONTH_YEAR = re.compile(
    r"(?<!\d)(\d{1,2})(?:er|st|nd|rd|th)?[\s.-]+([^\W\d_]{3,10})\.?,?[\s.-]+(\d{4}|\d{2})(?!\d)"
)
# "June 24, 2025"
_MONTH_DAY_YEAR = re.compile(r"\b([^\W\d_]{3,10})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})(?!\d)")

_ANNEE_MIN, _ANNEE_MAX = 1900, 2100


@dataclass(frozen=True)
class DateToken:
    """Date repérée dans le texte avec sa position et ses étiquettes contextuelles."""

    value: date
    start: int
    end: int
    invoice_context: bool = False
    due_context: bool = False


def to_date(token: str, languages: list[str], order: str = "DMY") -> Optional[date]:
    """
    Convertit un jeton complet (jour, mois, année) en date ; None si le jeton est
    incomplet, impossible (31/02) ou hors des années plausibles.
    """
    parsed = dateparser.parse(
        token,
        languages=languages,
        settings={"DATE_ORDER": order, "STRICT_PARSING": True},
    )
    if parsed is None or not _ANNEE_MIN < parsed.year < _ANNEE_MAX:
        return None
    return parsed.date()


def _scan(text: str, language: Language) -> list[tuple[date, int, int]]:
    languages = [language.value]
    found: list[tuple[date, int, int]] = []
    for m in _DMY.finditer(text):
        value = to_date(m.group(0), languages)
        if value:
            found.append((value, m.start(), m.end()))
    for m in _YMD.finditer(text):
        value = to_date(m.group(0), languages, order="YMD")
        if value:
            found.append((value, m.start(), m.end()))
    for m in _DAY_MONTH_YEAR.finditer(text):
        value = to_date(f"{m.group(1)} {m.group(2)} {m.group(3)}", languages)
        if value:
            found.append((value, m.start(), m.end()))
    if language is Language.EN:
        for m in _MONTH_DAY_YEAR.finditer(text):
            value = to_date(f"{m.group(2)} {m.group(1)} {m.group(3)}", languages)
            if value:
                found.append((value, m.start(), m.end()))
    found.sort(key=lambda item: item[1])
    return found


def parse_date_token(token: str, language: Optional[Language] = None) -> Optional[date]:
    """Lit une date isolée (capturée par un motif étiqueté), dans la langue donnée ou à défaut dans toutes."""
    token = token.strip()
    languages = [language] if language else list(Language)
    for lang in languages:
        for value, start, end in _scan(token, lang):
            if start == 0 and end == len(token):
                return value
    return None


def find_dates(text: str, language: Language) -> list[DateToken]:
    """Tous les jetons de date valides, étiquetés d'après une fenêtre de ±20 caractères."""
    tokens = []
    for value, start, end in _scan(text, language):
        context = text[max(0, start - FENETRE_CONTEXTE_DATE): end + FENETRE_CONTEXTE_DATE].lower()
        is_due = bool(DUE_TERMS[language].search(context))
        is_invoice = bool(INVOICE_TERMS[language].search(context)) and not is_due
        tokens.append(DateToken(value, start, end, invoice_context=is_invoice, due_context=is_due))
    return tokens


def resolve_dates(text: str, language: Language) -> PartialFields:
    """
    Détermine date de facture et date d'échéance.
    Si le contexte désigne les deux, on les retient ; sinon la date la plus ancienne
    devient la date de facture et la plus proche date strictement postérieure l'échéance.
    """
    tokens = find_dates(text, language)
    if not tokens:
        return PartialFields()

    if len(tokens) == 1:
        token = tokens[0]
        if token.due_context:
            return PartialFields().with_values(FieldSource.RELATIONAL, due_date=token.value)
        return PartialFields().with_values(FieldSource.RELATIONAL, invoice_date=token.value)

    invoice_pool = (
        [t for t in tokens if t.invoice_context]
        or [t for t in tokens if not t.due_context]
        or tokens
    )
    invoice_date = min(t.value for t in invoice_pool)
    due_pool = [t for t in tokens if t.due_context and t.value > invoice_date] or [
        t for t in tokens if t.value > invoice_date
    ]
    due_date = min((t.value for t in due_pool), default=None)

    logger.debug("Dates retenues : facture=%s, échéance=%s (%d jetons)", invoice_date, due_date, len(tokens))
    return PartialFields().with_values(FieldSource.RELATIONAL, invoice_date=invoice_date, due_date=due_date)
