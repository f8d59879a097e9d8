"""
Constantes métier de l'extraction et exceptions associées.
Les seuils ci-dessous sont empiriques : à faire valider par un expert métier
avant tout resserrement ou élargissement.
"""

from decimal import Decimal

# Tolérance sur HT + TVA == TTC (unités monétaires)
MONTANT_TOLERANCE = Decimal("0.02")

# Tolérance sur le taux de TVA recalculé (points de pourcentage)
TAUX_TOLERANCE = Decimal("1")

# Égalité entre deux candidats montants (recherche de triplets)
CANDIDAT_TOLERANCE = Decimal("0.01")

# Bornes exclusives d'un montant plausible
MONTANT_MIN = Decimal("0")
MONTANT_MAX = Decimal("1000000")

# Taux de TVA réels admis par l'inférence relationnelle
TAUX_TVA_REELS = (
    Decimal("5"),
    Decimal("5.5"),
    Decimal("6"),
    Decimal("10"),
    Decimal("20"),
    Decimal("21"),
    Decimal("25"),
)
TAUX_TVA_ECART_MAX = Decimal("0.5")

# Taux de TVA lu dans le texte : (0, 30]
TAUX_TVA_MAX = Decimal("30")

# Fenêtres de ratio TTC / HT
RATIO_TRIPLET = (Decimal("1.05"), Decimal("1.30"))
RATIO_DERNIER_RECOURS = (Decimal("1.05"), Decimal("2.0"))

# Seuil de confiance en dessous duquel le fallback IA est sollicité
SEUIL_CONFIANCE_IA = 80

# Fenêtre de contexte autour d'une date (caractères de part et d'autre)
FENETRE_CONTEXTE_DATE = 20

CENTIME = Decimal("0.01")


class EmptyInputError(ValueError):
    """Erreur levée lorsque le texte normalisé est vide : aucune extraction possible."""
