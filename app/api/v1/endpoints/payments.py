"""Payment endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.dependencies import CurrentPatient, DatabaseSession, Gateway
from app.schemas.payments import (
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentDetailsResponse,
    PaymentFailureRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from app.services.payment_service import PaymentService

router = APIRouter()


@router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Payments"],
    summary="Create payment order",
)
async def create_order(
    data: CreateOrderRequest,
    current_patient: CurrentPatient,
    db: DatabaseSession,
    gateway: Gateway,
) -> CreateOrderResponse:
    """
    Open a gateway order for an appointment's consultation fee.

    Args:
        data: Appointment to pay for
        current_patient: Authenticated patient
        db: Database session
        gateway: Payment gateway client

    Returns:
        Order details for checkout
    """
    service = PaymentService(db, gateway)
    return await service.create_order(data.appointment_id, current_patient)


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Verify payment",
)
async def verify_payment(
    data: VerifyPaymentRequest,
    current_patient: CurrentPatient,
    db: DatabaseSession,
    gateway: Gateway,
) -> VerifyPaymentResponse:
    """
    Verify the checkout signature and mark the appointment paid.

    Args:
        data: Gateway checkout result
        current_patient: Authenticated patient
        db: Database session
        gateway: Payment gateway client

    Returns:
        Payment and appointment status after settlement
    """
    service = PaymentService(db, gateway)
    return await service.verify(data, current_patient)


@router.post(
    "/failure",
    response_model=PaymentDetailsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Report payment failure",
)
async def report_payment_failure(
    data: PaymentFailureRequest,
    current_patient: CurrentPatient,
    db: DatabaseSession,
    gateway: Gateway,
) -> PaymentDetailsResponse:
    """Record a checkout failure reported by the client."""
    service = PaymentService(db, gateway)
    return await service.record_failure(data, current_patient)


@router.get(
    "/{appointment_id}",
    response_model=PaymentDetailsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Payments"],
    summary="Get payment details",
)
async def get_payment_details(
    appointment_id: UUID,
    current_patient: CurrentPatient,
    db: DatabaseSession,
    gateway: Gateway,
) -> PaymentDetailsResponse:
    """Get the payment state of an appointment."""
    service = PaymentService(db, gateway)
    return await service.get_payment_details(appointment_id, current_patient)
