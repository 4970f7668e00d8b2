# ordering/services/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from ordering.domain.schemas import Cart, CartLine
from ordering.utils.settings import TAX_RATE, DELIVERY_FEE

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingPolicy:
    """
    Flat tax rate on the subtotal plus a fixed delivery fee.

    total = subtotal + round(subtotal * tax_rate) + delivery_fee
    """

    tax_rate: Decimal = TAX_RATE
    delivery_fee: Decimal = DELIVERY_FEE

    @classmethod
    def from_settings(cls) -> "PricingPolicy":
        return cls(tax_rate=Decimal(TAX_RATE), delivery_fee=to_money(DELIVERY_FEE))

    def price_line(self, line: CartLine) -> CartLine:
        return line.model_copy(update={"line_total": to_money(line.unit_price * line.quantity)})

    def price_cart(self, cart: Cart, lines: Iterable[CartLine] | None = None) -> Cart:
        """Returns a copy of the cart with line totals and cart totals recomputed."""
        priced = [self.price_line(line) for line in (cart.items if lines is None else lines)]
        subtotal = to_money(sum((line.line_total for line in priced), Decimal("0.00")))
        tax = to_money(subtotal * self.tax_rate)
        fee = to_money(self.delivery_fee)
        return cart.model_copy(
            update={
                "items": priced,
                "subtotal": subtotal,
                "tax": tax,
                "delivery_fee": fee,
                "total": subtotal + tax + fee,
            }
        )
