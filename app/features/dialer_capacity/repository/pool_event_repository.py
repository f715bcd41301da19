"""
Append-only audit log of dialer pool changes.
"""

from app.db.helpers import execute_query
from app.features.dialer_capacity.domain.models import DialerPoolEvent


class PoolEventRepository:
    @staticmethod
    async def insert(event: DialerPoolEvent) -> None:
        await execute_query(
            """
            INSERT INTO dialer_pool_events (
                user_id, entity_type, contact_id, company_id, entity_name,
                action, paused_until, duration_months, reason_code,
                reason_notes, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
            """,
            (
                event.user_id,
                event.entity_type,
                event.contact_id,
                event.company_id,
                event.entity_name,
                event.action,
                event.paused_until,
                event.duration_months,
                event.reason_code,
                event.reason_notes,
            ),
        )

