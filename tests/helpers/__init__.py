"""
Test helpers for the lead API tests.
"""

from .database_helpers import (
    DatabaseHelpers,
    create_test_lead_in_db,
    create_multiple_test_leads,
    count_leads_in_db,
    csv_upload
)

__all__ = [
    "DatabaseHelpers",
    "create_test_lead_in_db",
    "create_multiple_test_leads",
    "count_leads_in_db",
    "csv_upload"
]
