"""Payment reconciliation for appointments."""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    PaymentVerificationException,
)
from app.core.payment_gateway import PaymentGateway
from app.schemas.appointments import AppointmentStatus, PaymentMethod, PaymentStatus
from app.schemas.auth import Actor
from app.schemas.payments import (
    CreateOrderResponse,
    PaymentDetailsResponse,
    PaymentFailureRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from app.services.appointment_service import load_appointment, write_appointment
from app.services.booking_state import BookingAction, can_transition, is_terminal

logger = structlog.get_logger(__name__)

_SETTLED_PAYMENT_STATUSES = (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value)


def to_minor_units(amount: Decimal) -> int:
    """Convert a fee to the gateway's minor currency unit."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    """Service linking gateway payments to appointments."""

    def __init__(self, db: AsyncSession, gateway: PaymentGateway):
        """Initialize service with database session and gateway client."""
        self.db = db
        self.gateway = gateway

    async def _load_for_patient(self, appointment_id: UUID, actor: Actor) -> dict[str, Any]:
        if not actor.is_patient:
            raise ForbiddenException("Only patients can pay for appointments")
        appointment = await load_appointment(self.db, appointment_id)
        if appointment["patient_id"] != actor.user_id:
            raise NotFoundException("Appointment not found")
        return appointment

    async def create_order(self, appointment_id: UUID, actor: Actor) -> CreateOrderResponse:
        """
        Open a gateway order for an appointment's consultation fee.

        Allowed while the payment is pending or failed. A gateway failure
        leaves the appointment untouched.

        Args:
            appointment_id: Appointment ID
            actor: Booking patient

        Returns:
            Order details for client checkout

        Raises:
            NotFoundException: If the appointment is unknown to the patient
            ConflictException: If already paid or the appointment is closed
            PaymentGatewayException: If the gateway call fails
        """
        appointment = await self._load_for_patient(appointment_id, actor)

        if appointment["payment_status"] in _SETTLED_PAYMENT_STATUSES:
            raise ConflictException("Payment already completed for this appointment")
        if is_terminal(appointment["status"]):
            raise ConflictException(
                f"Cannot pay for an appointment that is {appointment['status']}"
            )

        amount = to_minor_units(appointment["consultation_fee"])
        order = await self.gateway.create_order(
            amount=amount,
            currency=settings.payment_currency,
            receipt=f"apt_{appointment_id}",
            notes={
                "appointment_id": str(appointment_id),
                "patient_id": str(appointment["patient_id"]),
                "doctor_id": str(appointment["doctor_id"]),
            },
        )

        await write_appointment(
            self.db,
            appointment,
            {
                "payment_order_id": order["id"],
                "payment_status": PaymentStatus.PENDING.value,
                "payment_error": None,
            },
        )

        logger.info(
            "payment_order_created",
            appointment_id=str(appointment_id),
            order_id=order["id"],
            amount=amount,
        )

        return CreateOrderResponse(
            order_id=order["id"],
            amount=amount,
            currency=order.get("currency", settings.payment_currency),
            appointment_id=appointment_id,
            key=self.gateway.key_id,
        )

    async def verify(self, data: VerifyPaymentRequest, actor: Actor) -> VerifyPaymentResponse:
        """
        Verify a checkout signature and settle the appointment's payment.

        On success the payment is recorded as paid and a scheduled
        appointment is confirmed. Repeating a successful verification with the
        same payment id returns the recorded result. On a signature mismatch
        the payment is marked failed and the appointment stays as it was.

        Args:
            data: Gateway checkout result
            actor: Booking patient

        Returns:
            Settled payment and resulting appointment status

        Raises:
            NotFoundException: If the appointment is unknown to the patient
            ConflictException: If a different payment already settled it or the
                appointment is closed
            PaymentVerificationException: If the signature does not match
        """
        appointment = await self._load_for_patient(data.appointment_id, actor)

        signature_valid = self.gateway.verify_signature(
            data.order_id, data.payment_id, data.signature
        )
        order_matches = appointment["payment_order_id"] in (None, data.order_id)

        if appointment["payment_status"] == PaymentStatus.PAID.value:
            if signature_valid and appointment["payment_id"] == data.payment_id:
                return VerifyPaymentResponse(
                    appointment_id=appointment["id"],
                    payment_id=appointment["payment_id"],
                    payment_status=PaymentStatus.PAID,
                    appointment_status=appointment["status"],
                )
            raise ConflictException("Payment already completed for this appointment")

        if appointment["payment_status"] == PaymentStatus.REFUNDED.value:
            raise ConflictException("Payment for this appointment was refunded")

        if is_terminal(appointment["status"]):
            raise ConflictException(
                f"Cannot pay for an appointment that is {appointment['status']}"
            )

        if not (signature_valid and order_matches):
            await write_appointment(
                self.db,
                appointment,
                {
                    "payment_status": PaymentStatus.FAILED.value,
                    "payment_error": "Payment signature verification failed",
                },
            )
            logger.warning(
                "payment_verification_failed",
                appointment_id=str(data.appointment_id),
                order_id=data.order_id,
                order_matches=order_matches,
            )
            raise PaymentVerificationException()

        values: dict[str, Any] = {
            "payment_status": PaymentStatus.PAID.value,
            "payment_method": PaymentMethod.ONLINE.value,
            "payment_order_id": data.order_id,
            "payment_id": data.payment_id,
            "paid_at": datetime.now(UTC),
            "payment_error": None,
        }
        if can_transition(appointment["status"], BookingAction.CONFIRM):
            values["status"] = AppointmentStatus.CONFIRMED.value

        updated = await write_appointment(self.db, appointment, values)

        logger.info(
            "payment_verified",
            appointment_id=str(data.appointment_id),
            payment_id=data.payment_id,
            appointment_status=updated["status"],
        )

        return VerifyPaymentResponse(
            appointment_id=updated["id"],
            payment_id=updated["payment_id"],
            payment_status=updated["payment_status"],
            appointment_status=updated["status"],
        )

    async def record_failure(
        self,
        data: PaymentFailureRequest,
        actor: Actor,
    ) -> PaymentDetailsResponse:
        """
        Record a checkout failure reported by the client.

        A paid or refunded payment is left unchanged.
        """
        appointment = await self._load_for_patient(data.appointment_id, actor)

        if appointment["payment_status"] not in _SETTLED_PAYMENT_STATUSES:
            appointment = await write_appointment(
                self.db,
                appointment,
                {
                    "payment_status": PaymentStatus.FAILED.value,
                    "payment_error": data.error or "Payment failed",
                },
            )
            logger.info(
                "payment_failure_recorded",
                appointment_id=str(data.appointment_id),
                error=appointment["payment_error"],
            )

        return self._details(appointment)

    async def get_payment_details(
        self,
        appointment_id: UUID,
        actor: Actor,
    ) -> PaymentDetailsResponse:
        """Get the payment state of one of the patient's appointments."""
        appointment = await self._load_for_patient(appointment_id, actor)
        return self._details(appointment)

    @staticmethod
    def _details(appointment: dict[str, Any]) -> PaymentDetailsResponse:
        return PaymentDetailsResponse(
            appointment_id=appointment["id"],
            payment_status=appointment["payment_status"],
            payment_id=appointment["payment_id"],
            payment_order_id=appointment["payment_order_id"],
            payment_method=appointment["payment_method"],
            amount=appointment["consultation_fee"],
            paid_at=appointment["paid_at"],
            payment_error=appointment["payment_error"],
        )
