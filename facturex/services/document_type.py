"""
Type de document (facture, devis, bon de livraison) d'après les mots-clés de la langue détectée.
"""

from facturex.models.schemas import Language

DOCUMENT_KEYWORDS = {
    "invoice": {
        Language.FR: ("facture", "règlement", "tva", "total ttc"),
        Language.EN: ("invoice", "payment", "vat", "total amount"),
    },
    "quote": {
        Language.FR: ("devis", "proposition", "estimation", "validité"),
        Language.EN: ("quote", "quotation", "proposal", "estimate", "validity"),
    },
    "delivery_note": {
        Language.FR: ("bon de livraison", "livré", "expédition", "transporteur"),
        Language.EN: ("delivery note", "delivered", "shipment", "carrier"),
    },
}


def detect_document_type(text: str, language: Language) -> str:
    """
    Chaque mot-clé présent compte un point ; le type au score strictement le plus
    élevé l'emporte, sinon "unknown".
    """
    lowered = text.lower()
    scores = {
        doc_type: sum(1 for keyword in keywords[language] if keyword in lowered)
        for doc_type, keywords in DOCUMENT_KEYWORDS.items()
    }
    best = max(scores.values())
    winners = [doc_type for doc_type, value in scores.items() if value == best]
    if best == 0 or len(winners) > 1:
        return "unknown"
    return winners[0]
