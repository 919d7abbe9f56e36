"""
Consignment number pool service.

Admins assign contiguous number ranges to medicine users; each new booking claims
the lowest unused number from its owner's active ranges.

Claiming is race free without any in-process lock: the claim is an INSERT into
consignment_usages (UNIQUE consignment_number) inside a SAVEPOINT. If a concurrent
request took the same number first, the insert fails, the savepoint rolls back and
the next candidate is tried.
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import ConflictError, ConsignmentExhausted, NotFoundError, ValidationFailed
from app.models.consignment import ConsignmentAssignment, ConsignmentUsage
from app.models.user import User, UserRole


logger = logging.getLogger(__name__)


MSG_NOT_ASSIGNED = (
    "No consignment numbers assigned to your account. "
    "Please contact admin to get consignment numbers assigned."
)
MSG_EXHAUSTED = (
    "All consignment numbers have been used. "
    "Please contact admin to get more consignment numbers assigned."
)


class ConsignmentService:
    """Assignment, usage reporting and allocation of consignment numbers."""

    MAX_CLAIM_ATTEMPTS = 25

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== ASSIGNMENT ====================

    def validate_range(self, start_number: int, end_number: int) -> None:
        minimum = settings.CONSIGNMENT_MIN_NUMBER
        if start_number < minimum:
            raise ValidationFailed(f"Start number must be at least {minimum}")
        if end_number < start_number:
            raise ValidationFailed("End number must be greater than or equal to start number")
        if end_number - start_number + 1 > settings.CONSIGNMENT_MAX_BATCH:
            raise ValidationFailed(
                f"Maximum {settings.CONSIGNMENT_MAX_BATCH:,} numbers can be assigned at once"
            )

    async def find_overlap(
        self,
        start_number: int,
        end_number: int,
    ) -> Optional[ConsignmentAssignment]:
        """Any active range that shares at least one number with [start, end]."""
        stmt = select(ConsignmentAssignment).where(
            and_(
                ConsignmentAssignment.is_active == True,  # noqa: E712
                ConsignmentAssignment.start_number <= end_number,
                ConsignmentAssignment.end_number >= start_number,
            )
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def assign_range(
        self,
        medicine_user_id: uuid.UUID,
        start_number: int,
        end_number: int,
        notes: Optional[str] = None,
        assigned_by: Optional[uuid.UUID] = None,
    ) -> ConsignmentAssignment:
        """Give a medicine user a new range of consignment numbers."""
        self.validate_range(start_number, end_number)

        user = await self.db.get(User, medicine_user_id)
        if user is None or user.role != UserRole.MEDICINE.value:
            raise NotFoundError("Medicine user not found.")

        if await self.find_overlap(start_number, end_number) is not None:
            raise ConflictError("The specified number range is already assigned to another entity.")

        assignment = ConsignmentAssignment(
            medicine_user_id=medicine_user_id,
            start_number=start_number,
            end_number=end_number,
            total_numbers=end_number - start_number + 1,
            is_active=True,
            notes=notes,
            assigned_by=assigned_by,
        )
        self.db.add(assignment)
        await self.db.flush()

        logger.info(
            f"Assigned consignment numbers {start_number}-{end_number} to medicine user {medicine_user_id}"
        )
        return assignment

    async def get_active_assignments(self, medicine_user_id: uuid.UUID) -> list[ConsignmentAssignment]:
        stmt = (
            select(ConsignmentAssignment)
            .where(
                ConsignmentAssignment.medicine_user_id == medicine_user_id,
                ConsignmentAssignment.is_active == True,  # noqa: E712
            )
            .order_by(ConsignmentAssignment.start_number.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ==================== USAGE ====================

    async def used_count_by_assignment(self, assignments: list[ConsignmentAssignment]) -> dict[uuid.UUID, int]:
        """Numbers used inside each range, whichever assignment recorded the usage."""
        counts: dict[uuid.UUID, int] = {}
        for assignment in assignments:
            stmt = select(func.count(ConsignmentUsage.id)).where(
                ConsignmentUsage.consignment_number.between(assignment.start_number, assignment.end_number)
            )
            result = await self.db.execute(stmt)
            counts[assignment.id] = result.scalar() or 0
        return counts

    async def used_count(self, assignments: list[ConsignmentAssignment]) -> int:
        # Active ranges never overlap, so per-range counts add up.
        counts = await self.used_count_by_assignment(assignments)
        return sum(counts.values())

    async def get_summary(self, medicine_user_id: uuid.UUID) -> dict:
        """
        Pool totals across a user's active ranges.

        Returns:
            dict with assignments, totalAssigned, usedCount, availableCount, usagePercentage
        """
        assignments = await self.get_active_assignments(medicine_user_id)
        total_assigned = sum(a.total_numbers for a in assignments)
        used = await self.used_count(assignments)
        available = max(total_assigned - used, 0)
        percentage = round(used / total_assigned * 100, 2) if total_assigned else 0.0

        return {
            "assignments": assignments,
            "totalAssigned": total_assigned,
            "usedCount": used,
            "availableCount": available,
            "usagePercentage": percentage,
        }

    async def recent_usage(self, medicine_user_id: uuid.UUID, limit: int = 50) -> list[ConsignmentUsage]:
        stmt = (
            select(ConsignmentUsage)
            .where(ConsignmentUsage.medicine_user_id == medicine_user_id)
            .order_by(ConsignmentUsage.used_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ==================== ALLOCATION ====================

    async def _used_numbers(self, assignment: ConsignmentAssignment) -> set[int]:
        stmt = select(ConsignmentUsage.consignment_number).where(
            ConsignmentUsage.consignment_number.between(assignment.start_number, assignment.end_number)
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def _claim(
        self,
        assignment: ConsignmentAssignment,
        number: int,
        total_amount: Decimal,
        payment_type: str,
    ) -> Optional[ConsignmentUsage]:
        """Try to claim one number. Returns None if someone else holds it."""
        usage = ConsignmentUsage(
            assignment_id=assignment.id,
            medicine_user_id=assignment.medicine_user_id,
            consignment_number=number,
            booking_reference=str(number),
            total_amount=total_amount,
            payment_type=payment_type,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(usage)
                await self.db.flush()
        except IntegrityError:
            logger.warning(f"Consignment number {number} was claimed concurrently, trying the next one")
            return None
        return usage

    async def allocate_next(
        self,
        medicine_user_id: uuid.UUID,
        total_amount: Decimal = Decimal("0"),
        payment_type: str = "FP",
    ) -> ConsignmentUsage:
        """
        Claim the lowest unused number from the user's active ranges.

        Ranges are scanned in ascending start order.

        Raises:
            ConsignmentExhausted: no active range, or every number is used
            ConflictError: too many concurrent collisions in a row
        """
        assignments = await self.get_active_assignments(medicine_user_id)
        if not assignments:
            raise ConsignmentExhausted(MSG_NOT_ASSIGNED)

        collisions = 0
        for assignment in assignments:
            used = await self._used_numbers(assignment)
            if len(used) >= assignment.total_numbers:
                continue

            candidate = assignment.start_number
            while candidate <= assignment.end_number:
                if candidate in used:
                    candidate += 1
                    continue

                usage = await self._claim(assignment, candidate, total_amount, payment_type)
                if usage is not None:
                    logger.info(f"Allocated consignment number {candidate} to medicine user {medicine_user_id}")
                    return usage

                collisions += 1
                if collisions >= self.MAX_CLAIM_ATTEMPTS:
                    raise ConflictError("Could not allocate a consignment number, please retry")
                used.add(candidate)
                candidate += 1

        logger.warning(f"Consignment pool exhausted for medicine user {medicine_user_id}")
        raise ConsignmentExhausted(MSG_EXHAUSTED)
