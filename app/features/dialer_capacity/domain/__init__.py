"""
Domain subpackage for the dialer capacity feature.
"""

from .business_days import add_business_days, add_months, business_days_list, dialer_today
from .eligibility import filter_eligible, is_contact_eligible
from .models import (
    CapacityBucket,
    CapacitySettings,
    DialerContact,
    RemovalCandidate,
    ScheduleOptions,
)

__all__ = [
    "CapacityBucket",
    "CapacitySettings",
    "DialerContact",
    "RemovalCandidate",
    "ScheduleOptions",
    "add_business_days",
    "add_months",
    "business_days_list",
    "dialer_today",
    "filter_eligible",
    "is_contact_eligible",
]
