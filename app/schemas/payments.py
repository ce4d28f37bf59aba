"""Payment schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field, field_serializer

from app.schemas.appointments import AppointmentStatus, PaymentMethod, PaymentStatus


class CreateOrderRequest(BaseModel):
    """Request to open a gateway order for an appointment."""

    appointment_id: UUID = Field(validation_alias=AliasChoices("appointment_id", "appointmentId"))


class CreateOrderResponse(BaseModel):
    """Gateway order the client completes checkout against."""

    order_id: str
    amount: int = Field(..., description="Amount in minor currency units")
    currency: str
    appointment_id: UUID
    key: str


class VerifyPaymentRequest(BaseModel):
    """Checkout result returned by the gateway to the client."""

    order_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("order_id", "razorpay_order_id")
    )
    payment_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("payment_id", "razorpay_payment_id")
    )
    signature: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("signature", "razorpay_signature")
    )
    appointment_id: UUID = Field(validation_alias=AliasChoices("appointment_id", "appointmentId"))


class VerifyPaymentResponse(BaseModel):
    """Outcome of a successful verification."""

    appointment_id: UUID
    payment_id: str
    payment_status: PaymentStatus
    appointment_status: AppointmentStatus


class PaymentFailureRequest(BaseModel):
    """Client-reported checkout failure."""

    appointment_id: UUID = Field(validation_alias=AliasChoices("appointment_id", "appointmentId"))
    error: str | None = Field(None, max_length=500)


class PaymentDetailsResponse(BaseModel):
    """Payment state of an appointment."""

    appointment_id: UUID
    payment_status: PaymentStatus
    payment_id: str | None = None
    payment_order_id: str | None = None
    payment_method: PaymentMethod
    amount: Decimal
    paid_at: datetime | None = None
    payment_error: str | None = None

    @field_serializer("amount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)
