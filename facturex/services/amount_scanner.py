"""
Repérage de tous les montants plausibles du texte, sans attribution de rôle.
"""

import logging
import re

from facturex.models.constants import MONTANT_MAX, MONTANT_MIN
from facturex.models.schemas import AmountCandidate
from facturex.services.normalization import parse_amount
from facturex.services.patterns import AMOUNT, CURRENCY

logger = logging.getLogger(__name__)

# Ordre significatif : montant + devise, devise + montant, montant près d'un mot-clé fiscal
SCAN_PATTERNS = [
    re.compile(AMOUNT + r"\s?" + CURRENCY + r"\b"),
    re.compile(r"\b" + CURRENCY + r"\s?" + AMOUNT),
    re.compile(
        r"\b(?:HT|TTC|TVA|Total|Tax|VAT)"
        r"(?:[^\d]{0,15}?\d{1,2}(?:[.,]\d{1,2})?\s?%)?"
        r"[^\d]{0,15}?" + AMOUNT,
        re.IGNORECASE,
    ),
]


def scan_amounts(text: str) -> list[AmountCandidate]:
    """
    Liste des montants candidats, dédoublonnés au centime et triés par valeur décroissante.
    Ne lève jamais : liste vide si rien n'est trouvé.
    """
    seen: dict = {}
    for pattern in SCAN_PATTERNS:
        for match in pattern.finditer(text):
            raw = match.group(1)
            value = parse_amount(raw)
            if value is None or not MONTANT_MIN < value < MONTANT_MAX:
                continue
            if value not in seen:
                seen[value] = AmountCandidate(value=value, raw=raw, start=match.start(1), end=match.end(1))
    candidates = sorted(seen.values(), key=lambda c: c.value, reverse=True)
    logger.debug("Montants candidats : %s", ", ".join(str(c.value) for c in candidates))
    return candidates
