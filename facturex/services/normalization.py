"""
Fonctions de normalisation du texte extrait et de lecture des numéraux.
Le texte est canonisé une fois (espaces, devises, nombres fragmentés) ; la conversion
du séparateur décimal reste contextuelle et se fait à la lecture de chaque numéral.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from facturex.models.constants import CENTIME
from facturex.models.schemas import Language

_CURRENCY_GLYPHS = {"€": " EUR ", "$": " USD ", "£": " GBP "}
_WHITESPACE = re.compile(r"\s+")
# Chiffres isolés séparés par un espace : "6 0 0"
_SPLIT_DIGITS = re.compile(r"(?<!\d)\d(?: \d)+(?!\d)")
# Groupes de milliers séparés par un espace : "1 200" ou "12 345 678"
_THOUSANDS_GROUPS = re.compile(r"(?<!\d)\d{1,3}(?: \d{3})+(?!\d)")
_DECIMAL_COMMA = re.compile(r"^(.*),(\d{2})$")
# Un taux ou une quantité précédé de ces libellés reste séparé du montant qui suit
_NO_JOIN_LABEL = re.compile(
    r"\b(?:taux(?:\s+(?:de\s+)?(?:TVA|T\.V\.A\.?|VAT))?|rate|qt[ée]s?|quantit[ée]s?|qty|x)\s*[:.]?\s*$",
    re.IGNORECASE,
)

_FR_KEYWORDS = (
    "facture", "montant", "date d'émission", "tva", "total ttc", "échéance",
    "hors taxes", "à payer",
)
_EN_KEYWORDS = (
    "invoice", "amount", "issue date", "vat", "total amount", "due date",
    "subtotal", "tax",
)


def _join_number_fragments(text: str) -> str:
    text = _SPLIT_DIGITS.sub(lambda m: m.group(0).replace(" ", ""), text)

    def join_groups(m: re.Match) -> str:
        groups = m.group(0)
        if _NO_JOIN_LABEL.search(text[max(0, m.start() - 20): m.start()]):
            head, tail = groups.split(" ", 1)
            return head + " " + tail.replace(" ", "")
        return groups.replace(" ", "")

    return _THOUSANDS_GROUPS.sub(join_groups, text)


def normalize(text: str) -> str:
    """
    Canonise le texte : devises en jetons EUR/USD/GBP, espaces réduits,
    espaces parasites supprimés à l'intérieur des nombres.
    Fonction totale et idempotente ; les séparateurs décimaux ne sont pas touchés.
    """
    if not text:
        return ""
    for glyph, token in _CURRENCY_GLYPHS.items():
        text = text.replace(glyph, token)
    text = _WHITESPACE.sub(" ", text).strip()
    # point fixe : une jonction peut en rendre une autre possible
    while True:
        joined = _join_number_fragments(text)
        if joined == text:
            return text
        text = joined


def parse_amount(value: str) -> Optional[Decimal]:
    """
    Convertit un numéral en Decimal à 2 décimales.
    Virgule suivie d'exactement deux chiffres en fin de chaîne : virgule décimale
    (points et espaces = milliers). Sinon le point est décimal et virgules/espaces
    sont des séparateurs de milliers. Retourne None si le numéral est inexploitable.
    """
    if not value or not isinstance(value, str):
        return None
    s = re.sub(r"[\s\xa0\u202f]", "", value)
    match = _DECIMAL_COMMA.match(s)
    if match:
        s = match.group(1).replace(".", "") + "." + match.group(2)
    else:
        s = s.replace(",", "")
    try:
        amount = Decimal(s)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount.quantize(CENTIME, rounding=ROUND_HALF_UP)


def parse_rate(value: str) -> Optional[Decimal]:
    """Lit un taux ("20", "5,5", "5.5") ; None si illisible."""
    if not value:
        return None
    try:
        rate = Decimal(value.strip().replace(",", "."))
    except InvalidOperation:
        return None
    return rate if rate.is_finite() else None


def _count_keywords(text: str, keywords) -> int:
    return sum(
        len(re.findall(r"(?<!\w)" + re.escape(keyword) + r"(?!\w)", text))
        for keyword in keywords
    )


def detect_language(text: str) -> Language:
    """Langue du document d'après le nombre d'occurrences de mots-clés ; égalité → fr."""
    lowered = text.lower()
    french = _count_keywords(lowered, _FR_KEYWORDS)
    english = _count_keywords(lowered, _EN_KEYWORDS)
    return Language.FR if french >= english else Language.EN
