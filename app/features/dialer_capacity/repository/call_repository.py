"""
Read-only access to the append-only calls table.
"""

from app.db.helpers import fetch_all
from app.features.dialer_capacity.domain.models import CallRecord


class CallRepository:
    @staticmethod
    async def fetch_recent_calls(contact_ids: list[str], per_contact: int) -> list[CallRecord]:
        """
        Most recent `per_contact` calls for each id in one chunk.

        Rows come back grouped by contact, newest first within each group.
        """
        if not contact_ids:
            return []

        rows = await fetch_all(
            """
            SELECT contact_id, outcome, disposition, started_at
            FROM (
                SELECT contact_id,
                       outcome,
                       disposition,
                       started_at,
                       ROW_NUMBER() OVER (
                           PARTITION BY contact_id
                           ORDER BY started_at DESC
                       ) AS recency
                FROM calls
                WHERE contact_id = ANY(%s::uuid[])
            ) ranked
            WHERE recency <= %s
            ORDER BY contact_id, started_at DESC
            """,
            (list(contact_ids), per_contact),
        )
        return [
            CallRecord(
                contact_id=str(row["contact_id"]),
                outcome=row["outcome"],
                disposition=row.get("disposition"),
                started_at=row.get("started_at"),
            )
            for row in rows
        ]
