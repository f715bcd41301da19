"""
Raw-SQL access to contacts and companies for the capacity engine.

Reads over a user's book go through `fetch_all_paginated` so due counts are
never truncated by a row cap. Id-list reads and writes take one chunk at a
time; callers split id lists with `chunked` and own the per-chunk policy.
"""

from datetime import date, datetime

from app.config import settings
from app.db.helpers import execute_query, fetch_all, fetch_all_paginated, fetch_one
from app.features.dialer_capacity.domain.models import DialerContact
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CONTACT_COLUMNS = """
    id,
    company_id,
    phone,
    mobile,
    dialer_status,
    total_calls,
    next_call_date,
    is_aaa,
    first_name,
    last_name,
    company_name,
    last_contacted_at
"""


class ContactRepository:
    """Contact reads and scheduling-field writes, always scoped by user."""

    @staticmethod
    async def _fetch_contacts(where: str, params: tuple) -> list[DialerContact]:
        rows = await fetch_all_paginated(
            f"""
            SELECT {CONTACT_COLUMNS}
            FROM contacts
            WHERE {where}
            ORDER BY id
            """,
            params,
            page_size=settings.DIALER_PAGE_SIZE,
        )
        return [DialerContact.from_row(row) for row in rows]

    @staticmethod
    async def fetch_due_on_dates(user_id: str, days: list[date]) -> list[DialerContact]:
        """Contacts whose next_call_date is exactly one of `days`."""
        if not days:
            return []
        return await ContactRepository._fetch_contacts(
            "user_id = %s AND next_call_date = ANY(%s)", (user_id, list(days))
        )

    @staticmethod
    async def fetch_due_by(user_id: str, today: date) -> list[DialerContact]:
        """Unscheduled contacts plus everything dated on or before `today`."""
        return await ContactRepository._fetch_contacts(
            "user_id = %s AND (next_call_date IS NULL OR next_call_date <= %s)",
            (user_id, today),
        )

    @staticmethod
    async def fetch_unscheduled(user_id: str) -> list[DialerContact]:
        return await ContactRepository._fetch_contacts(
            "user_id = %s AND next_call_date IS NULL", (user_id,)
        )

    @staticmethod
    async def fetch_overdue(user_id: str, today: date) -> list[DialerContact]:
        return await ContactRepository._fetch_contacts(
            "user_id = %s AND next_call_date < %s", (user_id, today)
        )

    @staticmethod
    async def fetch_all_for_user(user_id: str) -> list[DialerContact]:
        return await ContactRepository._fetch_contacts("user_id = %s", (user_id,))

    @staticmethod
    async def fetch_by_ids(user_id: str, contact_ids: list[str]) -> list[DialerContact]:
        """One chunk of contacts by id. Unknown ids are silently absent."""
        if not contact_ids:
            return []
        rows = await fetch_all(
            f"""
            SELECT {CONTACT_COLUMNS}
            FROM contacts
            WHERE user_id = %s
              AND id = ANY(%s::uuid[])
            """,
            (user_id, list(contact_ids)),
        )
        return [DialerContact.from_row(row) for row in rows]

    @staticmethod
    async def update_next_call_date(user_id: str, contact_ids: list[str], day: date) -> int:
        """Set next_call_date for one chunk of ids. Returns rows updated."""
        if not contact_ids:
            return 0
        return await execute_query(
            """
            UPDATE contacts
            SET next_call_date = %s,
                updated_at = NOW()
            WHERE user_id = %s
              AND id = ANY(%s::uuid[])
            """,
            (day, user_id, list(contact_ids)),
        )

    @staticmethod
    async def pause_contact(
        user_id: str,
        contact_id: str,
        *,
        paused_until: date,
        reason_code: str,
        paused_at: datetime,
    ) -> DialerContact | None:
        """Mark a contact paused. Returns the updated contact, or None if absent."""
        row = await fetch_one(
            f"""
            UPDATE contacts
            SET dialer_status = 'paused',
                dialer_paused_until = %s,
                dialer_pause_reason_code = %s,
                dialer_paused_at = %s,
                updated_at = NOW()
            WHERE user_id = %s
              AND id = %s
            RETURNING {CONTACT_COLUMNS}
            """,
            (paused_until, reason_code, paused_at, user_id, contact_id),
        )
        return DialerContact.from_row(row) if row else None

    @staticmethod
    async def throttle_contact(
        user_id: str, contact_id: str, *, cadence_days: int, next_call_date: date
    ) -> bool:
        """Permanently lengthen a contact's cadence and push its next call out."""
        updated = await execute_query(
            """
            UPDATE contacts
            SET cadence_days = %s,
                next_call_date = %s,
                updated_at = NOW()
            WHERE user_id = %s
              AND id = %s
            """,
            (cadence_days, next_call_date, user_id, contact_id),
        )
        return updated > 0

    @staticmethod
    async def fetch_user_ids_with_contacts() -> list[str]:
        rows = await fetch_all_paginated(
            """
            SELECT DISTINCT user_id
            FROM contacts
            WHERE user_id IS NOT NULL
            ORDER BY user_id
            """,
            page_size=settings.DIALER_PAGE_SIZE,
        )
        return [str(row["user_id"]) for row in rows]


class CompanyRepository:
    @staticmethod
    async def fetch_paused_company_ids(today: date) -> set[str]:
        """Companies paused strictly beyond `today`. Not user scoped."""
        rows = await fetch_all_paginated(
            """
            SELECT id
            FROM companies
            WHERE dialer_paused_until IS NOT NULL
              AND dialer_paused_until > %s
            ORDER BY id
            """,
            (today,),
            page_size=settings.DIALER_PAGE_SIZE,
        )
        return {str(row["id"]) for row in rows}
