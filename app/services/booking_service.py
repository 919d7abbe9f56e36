"""
Booking service.

Creates bookings (validation, charge recomputation, consignment allocation),
answers the phone-number address lookup, and applies status changes.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from app.models.booking import MedicineBooking, BookingStatus, STATUS_SEQUENCE, TERMINAL_STATUSES
from app.models.coloader import Coloader
from app.models.user import User, UserRole, Permission
from app.schemas.booking import BookingCreate
from app.services.booking_rules import is_valid_mobile, validate_booking
from app.services.consignment_service import ConsignmentService
from app.services.pricing_calculator import (
    ChargeBreakdown,
    compute_charges,
    format_amount,
    is_gst_applicable,
)


logger = logging.getLogger(__name__)


ADDRESS_SIGNATURE_FIELDS = (
    "name", "mobileNumber", "email", "companyName", "flatBuilding", "locality",
    "landmark", "pincode", "city", "district", "state", "gstNumber", "addressType",
)

LOOKUP_FIELDS = ADDRESS_SIGNATURE_FIELDS + ("area",)


def mask_phone(phone: Optional[str]) -> str:
    if not phone:
        return "***"
    return f"***{phone[-4:]}"


def can_transition(current: str, target: str) -> bool:
    """
    Status moves forward along pending -> confirmed -> in_transit -> arrived -> delivered.
    Any non-terminal booking may be cancelled; delivered and cancelled are final.
    """
    terminal = {s.value for s in TERMINAL_STATUSES}
    if current in terminal:
        return False
    if target == BookingStatus.CANCELLED.value:
        return True

    order = [s.value for s in STATUS_SEQUENCE]
    if current not in order or target not in order:
        return False
    return order.index(target) > order.index(current)


def address_signature(address: dict[str, Any]) -> str:
    return "|".join(str(address.get(field) or "") for field in ADDRESS_SIGNATURE_FIELDS).lower()


class BookingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== CREATE ====================

    async def find_by_idempotency_key(self, user_id: uuid.UUID, key: str) -> Optional[MedicineBooking]:
        stmt = select(MedicineBooking).where(
            MedicineBooking.medicine_user_id == user_id,
            MedicineBooking.idempotency_key == key,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def _prepare_payload(self, data: BookingCreate) -> dict[str, Any]:
        payload = data.model_dump(mode="json", by_alias=True, exclude={"medicine_user_id"})

        for key in ("origin", "destination"):
            address = payload[key]
            address["gstNumber"] = (address.get("gstNumber") or "").strip().upper()
            address["mobileNumber"] = (address.get("mobileNumber") or "").strip()
            address["pincode"] = (address.get("pincode") or "").strip()

        invoice = payload["invoice"]
        invoice["eWaybillNumber"] = (invoice.get("eWaybillNumber") or "").strip()
        return payload

    def _build_charges(
        self,
        submitted: dict[str, Any],
        breakdown: ChargeBreakdown,
        gst_applicable: bool,
    ) -> dict[str, Any]:
        """
        Canonical charges section. Without GST only freight and grand total are kept.
        Derived amounts always come from the calculator, never from the client.
        """
        if not gst_applicable:
            return {
                "freightCharge": str(breakdown.freight_charge),
                "grandTotal": str(breakdown.grand_total),
            }

        charges = {
            key: (value if key == "fuelChargeType" else format_amount(value))
            for key, value in submitted.items()
        }
        charges.update(breakdown.amounts())
        return charges

    async def create_booking(
        self,
        user: User,
        data: BookingCreate,
        idempotency_key: Optional[str] = None,
    ) -> tuple[MedicineBooking, bool]:
        """
        Validate and persist a booking for a medicine user.

        Args:
            user: the authenticated medicine user; the booking and its consignment
                number belong to this user
            data: parsed request body
            idempotency_key: client token; a repeat returns the first booking

        Returns:
            (booking, created) where created is False for an idempotent replay

        Raises:
            ValidationFailed: a step rule failed (details lists every failure)
            ConsignmentExhausted: the user's pool has no free number
        """
        if idempotency_key:
            existing = await self.find_by_idempotency_key(user.id, idempotency_key)
            if existing is not None:
                logger.info(f"Replayed booking {existing.booking_reference} for idempotency key {idempotency_key}")
                return existing, False

        if data.medicine_user_id and data.medicine_user_id != user.id:
            logger.warning(f"Ignoring medicineUserId {data.medicine_user_id} supplied by user {user.id}")

        payload = self._prepare_payload(data)

        errors = validate_booking(payload, settings.EWAYBILL_THRESHOLD)
        if errors:
            logger.warning(f"Booking rejected for user {user.id}: {errors}")
            raise ValidationFailed(errors[0], details=errors)

        shipment = payload["shipment"]
        gst_applicable = is_gst_applicable(payload["billing"].get("gst"))
        breakdown = compute_charges(
            shipment.get("dimensions"),
            shipment.get("actualWeight"),
            shipment.get("perKgWeight"),
            gst_applicable,
            gst_rate=settings.GST_RATE,
            divisor=settings.VOLUMETRIC_DIVISOR,
        )
        submitted_total = payload["charges"].get("grandTotal")
        if submitted_total and format_amount(submitted_total) != str(breakdown.grand_total):
            logger.warning(
                f"Client grand total {submitted_total} differs from computed {breakdown.grand_total}"
            )
        shipment.update(breakdown.weights())
        charges = self._build_charges(payload["charges"], breakdown, gst_applicable)

        payment_type = "TP" if payload["payment"].get("mode") == "TP" else "FP"

        try:
            async with self.db.begin_nested():
                usage = await ConsignmentService(self.db).allocate_next(
                    user.id,
                    total_amount=breakdown.grand_total,
                    payment_type=payment_type,
                )
                booking = MedicineBooking(
                    medicine_user_id=user.id,
                    consignment_number=usage.consignment_number,
                    booking_reference=str(usage.consignment_number),
                    idempotency_key=idempotency_key,
                    status=BookingStatus.PENDING.value,
                    origin=payload["origin"],
                    destination=payload["destination"],
                    shipment=shipment,
                    package=payload["package"],
                    invoice=payload["invoice"],
                    billing=payload["billing"],
                    charges=charges,
                    payment=payload["payment"],
                    origin_mobile=payload["origin"]["mobileNumber"],
                    destination_mobile=payload["destination"]["mobileNumber"],
                )
                self.db.add(booking)
                await self.db.flush()
                usage.booking_id = booking.id
                await self.db.flush()
        except IntegrityError:
            # Same idempotency key submitted concurrently; the other request won
            if idempotency_key:
                existing = await self.find_by_idempotency_key(user.id, idempotency_key)
                if existing is not None:
                    return existing, False
            raise

        logger.info(
            f"Booking created: consignment {booking.consignment_number} for user {user.id}, "
            f"origin {mask_phone(booking.origin_mobile)}"
        )
        return booking, True

    # ==================== LOOKUP ====================

    async def lookup_addresses(self, phone: str, role: Optional[str] = None) -> list[dict[str, Any]]:
        """
        Addresses previously used with a phone number, newest first, de-duplicated.

        Args:
            phone: 10-digit mobile number
            role: "origin", "destination", or None for both
        """
        mobile = (phone or "").strip()
        if not is_valid_mobile(mobile):
            raise ValidationFailed("Phone must be a 10 digit number")

        if role == "origin":
            condition = MedicineBooking.origin_mobile == mobile
        elif role == "destination":
            condition = MedicineBooking.destination_mobile == mobile
        else:
            condition = or_(
                MedicineBooking.origin_mobile == mobile,
                MedicineBooking.destination_mobile == mobile,
            )

        stmt = (
            select(MedicineBooking)
            .where(condition)
            .order_by(MedicineBooking.created_at.desc())
            .limit(settings.ADDRESS_LOOKUP_LIMIT)
        )
        result = await self.db.execute(stmt)
        bookings = result.scalars().all()

        sides = [s for s in ("origin", "destination") if role in (None, s)]
        addresses: dict[str, dict[str, Any]] = {}
        for booking in bookings:
            for side in sides:
                address = getattr(booking, side) or {}
                if address.get("mobileNumber") != mobile:
                    continue
                signature = address_signature(address)
                if signature in addresses:
                    continue
                entry = {"id": f"{side}-{booking.id}", "role": side}
                entry.update({field: address.get(field) or "" for field in LOOKUP_FIELDS})
                entry["addressType"] = entry["addressType"] or "Home"
                addresses[signature] = entry

        logger.info(f"Address lookup for {mask_phone(mobile)} ({role or 'any'}): {len(addresses)} found")
        return list(addresses.values())

    # ==================== QUERIES ====================

    async def get(self, booking_id: uuid.UUID) -> MedicineBooking:
        booking = await self.db.get(MedicineBooking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    @staticmethod
    def ensure_visible(booking: MedicineBooking, user: User) -> MedicineBooking:
        """Medicine users only see their own bookings."""
        if user.role == UserRole.MEDICINE.value and booking.medicine_user_id != user.id:
            raise ForbiddenError("You do not have permission to view this booking")
        return booking

    async def get_for_user(self, booking_id: uuid.UUID, user: User) -> MedicineBooking:
        return self.ensure_visible(await self.get(booking_id), user)

    async def get_by_reference(self, reference: str) -> MedicineBooking:
        result = await self.db.execute(
            select(MedicineBooking).where(MedicineBooking.booking_reference == reference)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("No booking found with this reference number")
        return booking

    async def get_by_consignment(self, consignment_number: int) -> MedicineBooking:
        result = await self.db.execute(
            select(MedicineBooking).where(MedicineBooking.consignment_number == consignment_number)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("No booking found with this consignment number")
        return booking

    async def list_bookings(
        self,
        page: int,
        limit: int,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[MedicineBooking], int]:
        filters = []
        if user_id is not None:
            filters.append(MedicineBooking.medicine_user_id == user_id)
        if status:
            filters.append(MedicineBooking.status == status)
        if search:
            filters.append(or_(
                MedicineBooking.booking_reference.ilike(f"%{search}%"),
                MedicineBooking.origin_mobile.ilike(f"%{search}%"),
                MedicineBooking.destination_mobile.ilike(f"%{search}%"),
            ))

        total_result = await self.db.execute(
            select(func.count(MedicineBooking.id)).where(*filters)
        )
        total = total_result.scalar() or 0

        stmt = (
            select(MedicineBooking)
            .where(*filters)
            .order_by(MedicineBooking.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    # ==================== MUTATIONS ====================

    async def change_status(self, booking_id: uuid.UUID, target: BookingStatus, actor: User) -> MedicineBooking:
        """
        Apply a status change on behalf of actor.

        Medicine users may only cancel their own bookings. Admin and office users
        need bookingManagement and may apply any legal transition.
        """
        booking = await self.get(booking_id)

        if actor.role == UserRole.MEDICINE.value:
            if booking.medicine_user_id != actor.id:
                raise ForbiddenError("You do not have permission to update this booking")
            if target != BookingStatus.CANCELLED:
                raise ForbiddenError("Medicine users can only cancel bookings")
        elif not actor.has_permission(Permission.BOOKING_MANAGEMENT.value):
            raise ForbiddenError("Access denied. Booking management permission required.")

        if not can_transition(booking.status, target.value):
            raise ConflictError(f"Cannot change status from {booking.status} to {target.value}")

        previous = booking.status
        booking.status = target.value
        booking.status_changed_at = datetime.now(timezone.utc)
        await self.db.flush()

        logger.info(f"Booking {booking.booking_reference} status {previous} -> {target.value} by {actor.id}")
        return booking

    async def assign_coloader(self, booking_id: uuid.UUID, coloader_id: uuid.UUID) -> MedicineBooking:
        booking = await self.get(booking_id)
        coloader = await self.db.get(Coloader, coloader_id)
        if coloader is None:
            raise NotFoundError("Coloader not found")

        booking.coloader_id = coloader.id
        await self.db.flush()
        logger.info(f"Booking {booking.booking_reference} assigned to coloader {coloader.company_name}")
        return booking
