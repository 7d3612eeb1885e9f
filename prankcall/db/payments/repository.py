"""
Repository for the processed payment ledger.
"""

from datetime import UTC, datetime

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.db.payments.model import ProcessedPaymentSession
from prankcall.utils.logger import logger


class PaymentRepository:
    """Durable idempotency guard for checkout sessions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def claim_session(
        self,
        session_id: str,
        user_id: str,
        credits: int,
        package_id: str | None,
        source: str,
    ) -> bool:
        """
        Record a checkout session as processed.

        Args:
            session_id: Stripe checkout session ID
            user_id: User being credited
            credits: Credits granted
            package_id: Purchased package
            source: Code path that processed it (verify or webhook)

        Returns:
            bool: True if this call inserted the row and may credit the user
        """
        stmt = (
            insert(ProcessedPaymentSession)
            .values(
                session_id=session_id,
                user_id=user_id,
                credits=credits,
                package_id=package_id,
                source=source,
                processed_at=datetime.now(UTC),
            )
            .on_conflict_do_nothing(index_elements=["session_id"])
        )
        result = await self.session.execute(stmt)
        claimed = result.rowcount == 1
        logger.info(
            "[PaymentRepository] Claimed payment session"
            if claimed
            else "[PaymentRepository] Payment session already processed",
            session_id=session_id,
            source=source,
        )
        return claimed
