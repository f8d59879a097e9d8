"""
Réparation de cohérence : complète et corrige HT / TTC / TVA / taux (et l'ordre des dates)
pour que l'enregistrement respecte HT + TVA = TTC et TVA / HT = taux.
Fonction pure et totale : elle ne lève jamais, et renvoie un nouvel objet.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from facturex.models.constants import CENTIME, MONTANT_TOLERANCE
from facturex.models.schemas import FieldKind, FieldSource, PartialFields
from facturex.models.validation import amounts_gap, rate_consistent
from facturex.services.relational import match_real_vat_rate

logger = logging.getLogger(__name__)

HT, TTC, VAT, RATE = FieldKind.AMOUNT_HT, FieldKind.AMOUNT_TTC, FieldKind.VAT_AMOUNT, FieldKind.VAT_RATE

# En cas d'égalité de priorité, l'ordre dans lequel un montant est recalculé
_RECOMPUTE_ORDER = (VAT, TTC, HT)


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTIME, rounding=ROUND_HALF_UP)


def _priority(fields: PartialFields, kind: FieldKind) -> int:
    source = fields.source_of(kind)
    return source.priority if source else 0


def _derived_source(fields: PartialFields, *inputs: FieldKind) -> FieldSource:
    """Un champ déduit hérite de la source la plus faible de ses opérandes, au mieux 'relational'."""
    sources = [fields.source_of(kind) or FieldSource.AI for kind in inputs]
    weakest = min(sources, key=lambda s: s.priority)
    return weakest if weakest.priority < FieldSource.PATTERN.priority else FieldSource.RELATIONAL


def derive_rate(ht: Decimal, vat: Decimal) -> Decimal:
    """Taux recalculé : taux réel le plus proche s'il est à moins d'un demi-point, sinon arrondi au dixième."""
    raw = vat / ht * 100
    real = match_real_vat_rate(raw)
    if real is not None:
        return real
    return raw.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def _fix_order(fields: PartialFields) -> PartialFields:
    """HT > TTC : inversion si même priorité, sinon abandon du moins fiable."""
    ht, ttc = fields.amount_ht, fields.amount_ttc
    if not (fields.has(HT) and fields.has(TTC)) or ht <= ttc:
        return fields
    p_ht, p_ttc = _priority(fields, HT), _priority(fields, TTC)
    if p_ht == p_ttc:
        logger.info("HT (%s) > TTC (%s) : inversion", ht, ttc)
        sources = dict(fields.sources)
        sources[HT], sources[TTC] = fields.sources.get(TTC), fields.sources.get(HT)
        sources = {kind: source for kind, source in sources.items() if source is not None}
        return fields.model_copy(update={"amount_ht": ttc, "amount_ttc": ht, "sources": sources})
    dropped = HT if p_ht < p_ttc else TTC
    logger.info("HT (%s) > TTC (%s) : abandon de %s", ht, ttc, dropped.value)
    return fields.with_values(**{dropped.value: None})


def _fill_once(fields: PartialFields, with_rate: bool) -> Optional[PartialFields]:
    """Déduit un champ manquant à partir d'un sous-ensemble suffisant ; None si rien à déduire."""
    ht, ttc, vat, rate = fields.amount_ht, fields.amount_ttc, fields.vat_amount, fields.vat_rate
    has = {kind: fields.has(kind) for kind in (HT, TTC, VAT, RATE)}

    if not has[VAT]:
        if has[HT] and has[TTC]:
            return fields.with_values(_derived_source(fields, HT, TTC), vat_amount=_money(ttc - ht))
        if has[HT] and has[RATE]:
            return fields.with_values(_derived_source(fields, HT, RATE), vat_amount=_money(ht * rate / 100))
    if not has[TTC] and has[HT] and has[VAT]:
        return fields.with_values(_derived_source(fields, HT, VAT), amount_ttc=_money(ht + vat))
    if not has[HT]:
        if has[TTC] and has[VAT] and ttc > vat:
            return fields.with_values(_derived_source(fields, TTC, VAT), amount_ht=_money(ttc - vat))
        if has[TTC] and has[RATE]:
            return fields.with_values(_derived_source(fields, TTC, RATE), amount_ht=_money(ttc / (1 + rate / 100)))
        if has[VAT] and has[RATE]:
            return fields.with_values(_derived_source(fields, VAT, RATE), amount_ht=_money(vat * 100 / rate))
    if with_rate and not has[RATE] and has[HT] and has[VAT]:
        return fields.with_values(_derived_source(fields, HT, VAT), vat_rate=derive_rate(ht, vat))
    return None


def _fill(fields: PartialFields, with_rate: bool = True) -> PartialFields:
    # Au plus quatre champs à déduire
    for _ in range(4):
        filled = _fill_once(fields, with_rate)
        if filled is None:
            break
        fields = filled
    return fields


def _fix_amounts(fields: PartialFields) -> PartialFields:
    """HT + TVA != TTC : recalcule le montant le moins prioritaire à partir des deux autres."""
    gap = amounts_gap(fields)
    if gap is None or gap <= MONTANT_TOLERANCE:
        return fields
    target = min(_RECOMPUTE_ORDER, key=lambda kind: _priority(fields, kind))
    ht, ttc, vat = fields.amount_ht, fields.amount_ttc, fields.vat_amount
    logger.info("HT + TVA != TTC (écart %s) : recalcul de %s", gap, target.value)
    if target is VAT:
        return fields.with_values(_derived_source(fields, HT, TTC), vat_amount=_money(ttc - ht))
    if target is TTC:
        return fields.with_values(_derived_source(fields, HT, VAT), amount_ttc=_money(ht + vat))
    if ttc <= vat:
        return fields.with_values(amount_ht=None)
    return fields.with_values(_derived_source(fields, TTC, VAT), amount_ht=_money(ttc - vat))


def _fix_rate(fields: PartialFields) -> PartialFields:
    """
    Taux incohérent avec TVA / HT : si le taux est plus fiable que les deux montants à
    recalculer, ils sont déduits du montant de référence (TTC s'il prime sur HT, sinon HT) ;
    sinon c'est le taux qui est recalculé.
    """
    if rate_consistent(fields):
        return fields
    ht, ttc, rate = fields.amount_ht, fields.amount_ttc, fields.vat_rate
    p_rate = _priority(fields, RATE)
    from_ttc = _priority(fields, TTC) > _priority(fields, HT)
    targets = (HT, VAT) if from_ttc else (VAT, TTC)
    if all(p_rate > _priority(fields, kind) for kind in targets):
        if from_ttc:
            logger.info("Taux %s %% incohérent : recalcul de HT et TVA depuis TTC", rate)
            new_ht = _money(ttc / (1 + rate / 100))
            return fields.with_values(_derived_source(fields, TTC, RATE), amount_ht=new_ht, vat_amount=ttc - new_ht)
        logger.info("Taux %s %% incohérent : recalcul de TVA et TTC depuis HT", rate)
        vat = _money(ht * rate / 100)
        return fields.with_values(_derived_source(fields, HT, RATE), vat_amount=vat, amount_ttc=_money(ht + vat))
    logger.info("Taux %s %% incohérent : recalcul depuis TVA / HT", rate)
    return fields.with_values(_derived_source(fields, HT, VAT), vat_rate=derive_rate(ht, fields.vat_amount))


def _fix_dates(fields: PartialFields) -> PartialFields:
    invoice_date, due_date = fields.invoice_date, fields.due_date
    if invoice_date is None or due_date is None or due_date >= invoice_date:
        return fields
    p_invoice = _priority(fields, FieldKind.INVOICE_DATE)
    p_due = _priority(fields, FieldKind.DUE_DATE)
    dropped = FieldKind.INVOICE_DATE if p_invoice < p_due else FieldKind.DUE_DATE
    logger.info("Échéance %s antérieure à la facture %s : abandon de %s", due_date, invoice_date, dropped.value)
    return fields.with_values(**{dropped.value: None})


def repair(fields: PartialFields) -> PartialFields:
    """
    Rend l'enregistrement cohérent :
    - HT > TTC : inversion ou abandon du champ le moins fiable ;
    - complétion du quatrième champ parmi HT, TTC, TVA, taux ;
    - HT + TVA != TTC : recalcul du montant le moins prioritaire (égalité : TVA, puis TTC, puis HT) ;
    - taux incohérent : recalcul du taux, sauf s'il est plus fiable que les montants à recalculer ;
    - échéance antérieure à la date de facture : abandon de la date la moins fiable.
    Un champ 'pattern' n'est jamais écrasé au profit d'un champ moins prioritaire.
    """
    fields = _fix_order(fields)
    # le taux n'est déduit qu'une fois les montants réconciliés
    fields = _fill(fields, with_rate=False)
    fields = _fix_amounts(fields)
    fields = _fix_rate(fields)
    fields = _fill(fields)
    return _fix_dates(fields)
