"""
Calcul des montants du checkout (pur, sans I/O).

Ordre des arrondis (à l'unité monétaire, demi vers le haut):
  frais = arrondi(total_services × pourcentage / 100)
  taxe  = arrondi(frais × taux / 100)   # calculée sur les frais DÉJÀ arrondis
  à payer maintenant = frais + taxe
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from salonbook.config import TAX_RATE_PERCENT, FEE_MODE
from salonbook.errors import ConfigurationError, ValidationError

FEE_MODE_DEDUCT = "deduct"
FEE_MODE_ADDITIVE = "additive"
FEE_MODES = (FEE_MODE_DEDUCT, FEE_MODE_ADDITIVE)

_UNIT = Decimal("1")
_HUNDRED = Decimal("100")


class PricingBreakdown(BaseModel):
    """Instantané immuable; recalculer via compute_breakdown, ne jamais modifier."""
    model_config = ConfigDict(frozen=True)

    service_total: Decimal
    fee_percentage: Decimal
    tax_rate: Decimal
    fee_mode: str
    booking_fee: Decimal
    tax: Decimal
    pay_now: Decimal
    pay_at_venue: Decimal

    @property
    def customer_total(self) -> Decimal:
        return self.pay_now + self.pay_at_venue

    def as_dict(self) -> dict:
        return {
            "service_total": money(self.service_total),
            "fee_percentage": money(self.fee_percentage),
            "tax_rate": money(self.tax_rate),
            "fee_mode": self.fee_mode,
            "booking_fee": money(self.booking_fee),
            "tax": money(self.tax),
            "pay_now": money(self.pay_now),
            "pay_at_venue": money(self.pay_at_venue),
            "customer_total": money(self.customer_total),
        }

    def amount_minor(self, exponent: int = 2) -> int:
        """Montant « à payer maintenant » dans la plus petite unité (paise, centimes)."""
        return int((self.pay_now * (Decimal(10) ** exponent)).to_integral_value(rounding=ROUND_HALF_UP))


def round_half_up(value: Decimal) -> Decimal:
    return value.quantize(_UNIT, rounding=ROUND_HALF_UP)


def money(value: Decimal):
    """Decimal -> int si entier, sinon float (réponses JSON)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Valeur numérique invalide pour {field}")


def compute_breakdown(
    service_total: Any,
    fee_percentage: Any,
    tax_rate: Any = TAX_RATE_PERCENT,
    fee_mode: str = FEE_MODE,
) -> PricingBreakdown:
    """
    Construit le détail des montants à partir du total des services.
    - fee_percentage absent (None) => ConfigurationError: pas de valeur par défaut.
    - fee_percentage hors [0, 100], taux de taxe négatif, mode inconnu => ConfigurationError.
    - service_total négatif => ValidationError.
    """
    if fee_percentage is None or fee_percentage == "":
        raise ConfigurationError("Pourcentage de frais de réservation non chargé")
    try:
        fee = Decimal(str(fee_percentage))
        rate = Decimal(str(tax_rate))
    except (InvalidOperation, ValueError, TypeError):
        raise ConfigurationError("Configuration de frais/taxe illisible")
    if not fee.is_finite() or fee < 0 or fee > _HUNDRED:
        raise ConfigurationError(f"Pourcentage de frais hors bornes: {fee_percentage}")
    if not rate.is_finite() or rate < 0:
        raise ConfigurationError(f"Taux de taxe invalide: {tax_rate}")
    mode = (fee_mode or "").lower()
    if mode not in FEE_MODES:
        raise ConfigurationError(f"Mode de frais inconnu: {fee_mode}")

    total = _to_decimal(service_total, "service_total")
    if not total.is_finite() or total < 0:
        raise ValidationError("Le total des services ne peut pas être négatif")

    booking_fee = round_half_up(total * fee / _HUNDRED)
    tax = round_half_up(booking_fee * rate / _HUNDRED)
    pay_at_venue = total - booking_fee if mode == FEE_MODE_DEDUCT else total

    return PricingBreakdown(
        service_total=total,
        fee_percentage=fee,
        tax_rate=rate,
        fee_mode=mode,
        booking_fee=booking_fee,
        tax=tax,
        pay_now=booking_fee + tax,
        pay_at_venue=pay_at_venue,
    )


def breakdown_for_cart(cart, fee_percentage: Optional[Any], **kwargs) -> PricingBreakdown:
    """Raccourci: calcule sur cart.total_amount() (toujours dérivé des lignes)."""
    return compute_breakdown(cart.total_amount(), fee_percentage, **kwargs)
