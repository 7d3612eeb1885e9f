"""
Pydantic schemas for the billing API.
"""

from pydantic import BaseModel, Field

from prankcall.billing.constants import BillingErrorCode, CreditPackage


class CreditPackageResponse(BaseModel):
    id: str
    name: str
    price: float
    credits: int
    popular: bool
    description: str
    currency: str

    @classmethod
    def from_package(cls, package: CreditPackage, currency: str) -> "CreditPackageResponse":
        return cls(
            id=package.id,
            name=package.name,
            price=package.price,
            credits=package.credits,
            popular=package.popular,
            description=package.description,
            currency=currency.upper(),
        )


class PackageListResponse(BaseModel):
    success: bool = True
    packages: list[CreditPackageResponse]


class CheckoutRequest(BaseModel):
    package_id: str = Field(..., description="Credit package to buy")
    success_url: str | None = None
    cancel_url: str | None = None


class CheckoutResponse(BaseModel):
    success: bool = True
    session_id: str
    url: str | None


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    verified: bool
    credits_added: int = 0
    message: str
    credits: int | None = Field(None, description="Balance of the credited user")


class WebhookResponse(BaseModel):
    received: bool = True


class BillingErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_code: BillingErrorCode
