"""Credit packages and Stripe constants."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class CreditPackage:
    id: str
    name: str
    price_cents: int
    credits: int
    popular: bool
    description: str

    @property
    def price(self) -> float:
        return self.price_cents / 100


CREDIT_PACKAGES = (
    CreditPackage(
        id="small",
        name="5 Credits",
        price_cents=600,
        credits=5,
        popular=False,
        description="Perfect to get started",
    ),
    CreditPackage(
        id="medium",
        name="10 Credits",
        price_cents=1000,
        credits=10,
        popular=True,
        description="Best deal! Save €2",
    ),
    CreditPackage(
        id="large",
        name="25 Credits",
        price_cents=2250,
        credits=25,
        popular=False,
        description="Biggest saving! Save €7.50",
    ),
)


def get_package(package_id: str) -> CreditPackage | None:
    return next((p for p in CREDIT_PACKAGES if p.id == package_id), None)


CHECKOUT_COMPLETED_EVENT = "checkout.session.completed"
PAID_STATUS = "paid"


class PaymentSource(str, Enum):
    """Code path that settled a checkout session."""

    VERIFY = "verify"
    WEBHOOK = "webhook"


class BillingErrorCode(str, Enum):
    INVALID_PACKAGE = "INVALID_PACKAGE"
    NOT_CONFIGURED = "NOT_CONFIGURED"
    NOT_FOUND = "NOT_FOUND"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
