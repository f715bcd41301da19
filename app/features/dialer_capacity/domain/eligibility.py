"""
Dialer eligibility predicate.

Every counting, classifying and scheduling path goes through
`is_contact_eligible`; do not re-derive the rules inline.
"""

from collections.abc import Set

from .models import INACTIVE_DIALER_STATUSES, MAX_CALL_ATTEMPTS, DialerContact


def is_contact_eligible(
    contact: DialerContact, paused_company_ids: Set[str] | None = None
) -> bool:
    """Return True if the contact may be dialed right now."""
    if not contact.phone and not contact.mobile:
        return False

    if contact.dialer_status in INACTIVE_DIALER_STATUSES:
        return False

    # Retired after the attempt cap regardless of outcome
    if (contact.total_calls or 0) >= MAX_CALL_ATTEMPTS:
        return False

    # Company pause overrides contact state
    if contact.company_id and paused_company_ids and contact.company_id in paused_company_ids:
        return False

    return True


def filter_eligible(
    contacts: list[DialerContact], paused_company_ids: Set[str] | None = None
) -> list[DialerContact]:
    return [c for c in contacts if is_contact_eligible(c, paused_company_ids)]
