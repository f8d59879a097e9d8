"""
Extraction par motifs étiquetés (FR/EN) : numéro de facture, montants, taux, dates.
Pour chaque champ, la première correspondance valide l'emporte ; la langue détectée
est essayée en premier, puis l'autre langue, puis les motifs de dernier recours.
"""

import logging
import re
from typing import Callable, Iterator, Optional

from facturex.models.constants import MONTANT_MAX, MONTANT_MIN, TAUX_TVA_MAX
from facturex.models.schemas import FieldKind, FieldSource, Language, PartialFields
from facturex.services.dates import parse_date_token
from facturex.services.normalization import parse_amount, parse_rate
from facturex.services.patterns import (
    EXCLUDED_PREFIXES,
    FALLBACK_PATTERNS,
    PATTERNS,
    PHONE_LABEL,
    TAX_ID_LABEL,
    VAT_ID,
)

logger = logging.getLogger(__name__)

_DATE_SHAPED = re.compile(r"^\d{1,4}[/.-]\d{1,2}[/.-]\d{1,4}$")
_INVOICE_WORD = re.compile(r"factur|invoice", re.IGNORECASE)
_PHONE = re.compile(r"^0[1-9]\d{8}$")
_POSTAL_CODE = re.compile(r"^\d{5}$")
_SIRET = re.compile(r"^\d{14}$")


def _ordered_patterns(kind: FieldKind, language: Language) -> Iterator[tuple[re.Pattern, bool]]:
    """Motifs à essayer, chacun accompagné d'un indicateur 'motif étiqueté'."""
    table = PATTERNS.get(kind, {})
    for pattern in table.get(language, []) + table.get(language.other, []):
        yield pattern, True
    for pattern in FALLBACK_PATTERNS.get(kind, []):
        yield pattern, False


def is_plausible_invoice_number(value: str, label: str = "", preceding: str = "") -> bool:
    """
    Filtre les faux positifs courants : téléphone, identifiants d'entreprise ou fiscaux
    (SIREN, TVA intracommunautaire, RCS, IBAN), code postal et SIRET (sauf si le libellé
    parle explicitement de facture), dates, valeurs sans chiffre.
    """
    if not any(ch.isdigit() for ch in value):
        return False
    if _DATE_SHAPED.match(value):
        return False
    if PHONE_LABEL.search(preceding) or TAX_ID_LABEL.search(preceding):
        return False
    if _INVOICE_WORD.search(label):
        return True
    digits = re.sub(r"[\s.\-/]", "", value)
    if VAT_ID.match(digits):
        return False
    return not (_PHONE.match(digits) or _POSTAL_CODE.match(digits) or _SIRET.match(digits))


def _invoice_number(match: re.Match, text: str):
    value = match.group(1).strip().rstrip(".-/_")
    label = match.group(0)[: match.start(1) - match.start(0)]
    preceding = text[max(0, match.start(1) - 25): match.start(1)]
    if is_plausible_invoice_number(value, label, preceding):
        return value
    logger.debug("Numéro de facture rejeté : %r", value)
    return None


def _amount(kind: FieldKind) -> Callable[[re.Match, str], Optional[object]]:
    excluded = EXCLUDED_PREFIXES.get(kind)

    def read(match: re.Match, text: str):
        if excluded and excluded.search(text[max(0, match.start() - 15): match.start()]):
            return None
        amount = parse_amount(match.group(1))
        if amount is None or not MONTANT_MIN < amount < MONTANT_MAX:
            return None
        return amount

    return read


def _rate(match: re.Match, text: str):
    rate = parse_rate(match.group(1))
    if rate is None or not 0 < rate <= TAUX_TVA_MAX:
        return None
    return rate


def _date(match: re.Match, text: str):
    return parse_date_token(match.group(1))


_READERS: dict[FieldKind, Callable[[re.Match, str], Optional[object]]] = {
    FieldKind.INVOICE_NUMBER: _invoice_number,
    FieldKind.AMOUNT_HT: _amount(FieldKind.AMOUNT_HT),
    FieldKind.AMOUNT_TTC: _amount(FieldKind.AMOUNT_TTC),
    FieldKind.VAT_AMOUNT: _amount(FieldKind.VAT_AMOUNT),
    FieldKind.VAT_RATE: _rate,
    FieldKind.INVOICE_DATE: _date,
    FieldKind.DUE_DATE: _date,
}


def _match(text: str, kind: FieldKind, language: Language) -> tuple[Optional[object], bool]:
    read = _READERS[kind]
    for pattern, labelled in _ordered_patterns(kind, language):
        for match in pattern.finditer(text):
            value = read(match, text)
            if value is not None:
                logger.debug("%s trouvé par motif %r : %s", kind.value, pattern.pattern[:40], value)
                return value, labelled
    return None, False


def match_field(text: str, kind: FieldKind, language: Language):
    """Première valeur valide pour un champ, ou None."""
    return _match(text, kind, language)[0]


def match_fields(text: str, language: Language) -> PartialFields:
    """
    Applique la table de motifs à chaque champ cible. Les champs trouvés par un motif
    étiqueté sont marqués 'pattern' ; ceux des motifs de dernier recours, sans libellé,
    sont marqués 'relational' et pèsent donc moins dans le score.
    """
    fields = PartialFields()
    for kind in FieldKind:
        value, labelled = _match(text, kind, language)
        if value is not None:
            source = FieldSource.PATTERN if labelled else FieldSource.RELATIONAL
            fields = fields.with_values(source, **{kind.value: value})
    found = [kind.value for kind in fields.filled()]
    logger.info("Motifs (%s) : %d champ(s) trouvé(s) %s", language.value, len(found), found)
    return fields
