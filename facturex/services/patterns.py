"""
Table des expressions régulières par champ et par langue.
Ajouter une langue ou un champ est un changement de données : le matcher parcourt
PATTERNS de façon générique (langue détectée d'abord, puis l'autre, puis FALLBACK_PATTERNS).
"""

import re

from facturex.models.schemas import FieldKind, Language

# Numéral monétaire : "600,00", "1.200,00", "1,200.00", "1200" ; ni date, ni pourcentage.
AMOUNT = r"(?<![\d/.,-])(\d+(?:[.,]\d{3})*(?:[.,]\d{2})?)(?![\d/]|[.,]\d|-\d)(?!\s?%)"
CURRENCY = r"(?:EUR|USD|GBP)"
SEP = r"\s*[:.]?\s*(?:\(?" + CURRENCY + r"\)?\s?)?"
RATE = r"(?<![\d.,])(\d{1,2}(?:[.,]\d{1,2})?)"
RATE_OPT = r"(?:\s*\(?\s*\d{1,2}(?:[.,]\d{1,2})?\s*%\s*\)?)?"
DATE = (
    r"(\d{1,2}[/.-]\d{1,2}[/.-](?:\d{4}|\d{2})(?!\d)"
    r"|\d{4}-\d{1,2}-\d{1,2}(?!\d)"
    r"|\d{1,2}(?:er|st|nd|rd|th)?[\s.-]+[^\W\d_]+\.?,?[\s.-]+(?:\d{4}|\d{2})(?!\d)"
    r"|[^\W\d_]+\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4})"
)
IDENT = r"([A-Z0-9][A-Z0-9\-_/.]{2,24})"

_TVA = r"T\.?V\.?A\.?"


def _compile(*templates: str) -> list[re.Pattern]:
    return [
        re.compile(
            t.format(amount=AMOUNT, sep=SEP, rate=RATE, rate_opt=RATE_OPT, date=DATE, id=IDENT, tva=_TVA),
            re.IGNORECASE,
        )
        for t in templates
    ]


PATTERNS: dict[FieldKind, dict[Language, list[re.Pattern]]] = {
    FieldKind.INVOICE_NUMBER: {
        Language.FR: _compile(
            r"\bFacture\s*(?:n°|no\b\.?|num[ée]ro|#)\s*[:.]?\s*{id}",
            r"\bN°\s*(?:de\s+)?facture\s*[:.]?\s*{id}",
            r"\bNum[ée]ro\s+de\s+(?:la\s+)?facture\s*[:.]?\s*{id}",
            r"\bR[ée]f[ée]rence\s+(?:de\s+(?:la\s+)?)?facture\s*[:.]?\s*{id}",
            r"\b((?:FACT|FAC|FA|FC|F)[-_]?\d{{4}}[-_/]?\d{{2,}})\b",
            r"\bFacture\s*[:.]?\s*(\d{{4,}}(?:[-/]\d{{2,}})?)\b",
            r"(?:\bR[ée]f[ée]rence|\bR[ée]f\.?|\bN°)\s*[:.]?\s*{id}",
        ),
        Language.EN: _compile(
            r"\bInvoice\s*(?:number|num\.?|no\b\.?|n°|#|ID)\s*[:.]?\s*{id}",
            r"\bInvoice\s+ref(?:erence)?\.?\s*[:.]?\s*{id}",
            r"\b((?:INVOICE|INV)[-_]?\d{{3,}}(?:[-_/]\d+)*)\b",
            r"\bInvoice\s*[:.#]?\s*(\d{{4,}}(?:[-/]\d{{2,}})?)\b",
            r"(?:\bReference|\bRef\.?|\bNo\.)\s*[:.]?\s*{id}",
        ),
    },
    FieldKind.AMOUNT_HT: {
        Language.FR: _compile(
            r"\bTotal\s+H\.?T\.?{sep}{amount}",
            r"\bMontant\s+(?:total\s+)?H\.?T\.?{sep}{amount}",
            r"\bSous[-\s]total(?:\s+en\s+(?:EUR|USD|GBP))?{sep}{amount}",
            r"\b(?:montant|total|prix|net)\s+hors\s+(?:taxes?|{tva}){sep}{amount}",
            r"\b(?:HT|hors\s+taxes?|hors\s+{tva}){sep}{amount}",
        ),
        Language.EN: _compile(
            r"\b(?:Sub[-\s]?total|Net\s+amount|Net\s+total|Total\s+net){sep}{amount}",
            r"\bTotal\s+(?:excluding|excl\.?|ex\.?|before)\s+(?:VAT|tax(?:es)?){sep}{amount}",
            r"\b(?:amount|price)\s+(?:excluding|excl\.?|before)\s+(?:VAT|tax(?:es)?){sep}{amount}",
        ),
    },
    FieldKind.AMOUNT_TTC: {
        Language.FR: _compile(
            r"\bTotal\s+T\.?T\.?C\.?{sep}{amount}",
            r"\b(?:Net|Total|Reste|Montant)\s+[àa]\s+payer{sep}{amount}",
            r"\bMontant\s+(?:total\s+)?T\.?T\.?C\.?{sep}{amount}",
            r"\b(?:montant|total|prix|somme)\s+toutes\s+taxes\s+comprises{sep}{amount}",
            r"\b[ÀA]\s+payer{sep}{amount}",
            r"\bT\.?T\.?C\.?{sep}{amount}",
        ),
        Language.EN: _compile(
            r"\b(?:Total\s+amount|Grand\s+total|Total\s+due|Amount\s+due|Balance\s+due"
            r"|Amount\s+payable|Total\s+payable){sep}{amount}",
            r"\bTotal\s*\(?\s*(?:including|incl\.?|inc\.?)\s+(?:VAT|tax(?:es)?)\s*\)?{sep}{amount}",
            r"\b(?:amount|price)\s+(?:including|incl\.?|inc\.?)\s+(?:VAT|tax(?:es)?){sep}{amount}",
        ),
    },
    FieldKind.VAT_AMOUNT: {
        Language.FR: _compile(
            r"\bMontant\s+(?:total\s+)?(?:de\s+(?:la\s+)?)?{tva}{rate_opt}{sep}{amount}",
            r"\b(?:Total\s+)?{tva}{rate_opt}{sep}{amount}",
        ),
        Language.EN: _compile(
            r"\b(?:VAT|Tax)\s+amount{rate_opt}{sep}{amount}",
            r"\b(?:Total\s+)?(?:VAT|Sales\s+tax|Tax(?:es)?){rate_opt}{sep}{amount}",
        ),
    },
    FieldKind.VAT_RATE: {
        Language.FR: _compile(
            r"\bTaux\s+(?:de\s+)?(?:{tva}\s*)?[:.]?\s*{rate}\s*%",
            r"\b{tva}\s*(?:[àa]\s*)?\(?\s*{rate}\s*%",
            r"{rate}\s*%\s*(?:de\s+)?{tva}",
        ),
        Language.EN: _compile(
            r"\b(?:VAT|Tax)\s+rate\s*[:.]?\s*{rate}\s*%",
            r"\b(?:VAT|Tax)\s*(?:@\s*)?\(?\s*{rate}\s*%",
            r"{rate}\s*%\s*(?:VAT|Tax)",
        ),
    },
    FieldKind.INVOICE_DATE: {
        Language.FR: _compile(
            r"\bDate\s+(?:de\s+(?:la\s+)?)?facture\s*[:.]?\s*(?:le\s+|du\s+)?{date}",
            r"\bDate\s+d['’]\s*[ée]mission\s*[:.]?\s*{date}",
            r"\b[ÉE]mise?\s+le\s*[:.]?\s*{date}",
            r"\bFacture\s+du\s+{date}",
            r"\bDate\s*[:.]\s*{date}",
        ),
        Language.EN: _compile(
            r"\bInvoice\s+date\s*[:.]?\s*{date}",
            r"\bIssued?\s+(?:date|on)\s*[:.]?\s*{date}",
            r"\bDate\s+of\s+issue\s*[:.]?\s*{date}",
            r"\bDate\s*[:.]\s*{date}",
        ),
    },
    FieldKind.DUE_DATE: {
        Language.FR: _compile(
            r"\bDate\s+d['’]\s*[ée]ch[ée]ance\s*[:.]?\s*{date}",
            r"\b[ÉE]ch[ée]ance\s*[:.]?\s*(?:le\s+|au\s+)?{date}",
            r"\b(?:Date\s+limite\s+de\s+(?:paiement|r[èe]glement)|[àa]\s+payer\s+avant\s+le"
            r"|Payable\s+(?:avant\s+)?le)\s*[:.]?\s*{date}",
        ),
        Language.EN: _compile(
            r"\bDue\s+(?:date|on|by)\s*[:.]?\s*{date}",
            r"\b(?:Payment\s+due|Pay\s+by|Payable\s+by)\s*[:.]?\s*{date}",
        ),
    },
}

# Dernier recours, quelle que soit la langue
FALLBACK_PATTERNS: dict[FieldKind, list[re.Pattern]] = {
    FieldKind.INVOICE_NUMBER: _compile(r"(?<![.,]\d)\b([A-Z]{{0,3}}\d{{6,12}})\b(?![.,]\d)"),
}

# Un montant de TVA précédé de ces mots désigne en réalité un total HT ou TTC
EXCLUDED_PREFIXES: dict[FieldKind, re.Pattern] = {
    FieldKind.VAT_AMOUNT: re.compile(
        r"(?:\b(?:hors|excl|excluding|incl|including|inc|ex|before|avant)\.?\s*|\btoutes\s+)$",
        re.IGNORECASE,
    ),
}

PHONE_LABEL = re.compile(
    r"\b(?:t[ée]l[ée]phone|t[ée]l|phone|fax|mobile|portable|gsm)\b\.?\s*[:.]?\s*(?:n°\s*)?[:.]?\s*$",
    re.IGNORECASE,
)

# Identifiants d'entreprise ou fiscaux : la valeur qui suit n'est pas un numéro de facture
TAX_ID_LABEL = re.compile(
    r"\b(?:SIREN|SIRET|TVA|T\.V\.A|VAT|intra[-\s]?com\w*|RCS|IBAN|BIC|APE|NAF|EORI)\b\W*(?:\w+\W+)?$",
    re.IGNORECASE,
)
# Numéro de TVA intracommunautaire français : FR + clé à 2 caractères + SIREN
VAT_ID = re.compile(r"^FR[0-9A-Z]{2}\d{9}$", re.IGNORECASE)
