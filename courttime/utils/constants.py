"""
Constants used across the booking and membership rules.
"""

# Membership admission
DEFAULT_MEMBERSHIP_TYPE = "Full"
DEFAULT_ACCOUNTS_LIMIT = 4  # Household cap for a whitelisted address

# Admin-driven booking transitions
ADMIN_BOOKING_STATUSES = ("confirmed", "cancelled", "completed")

# Member fields a facility admin may update
MEMBER_UPDATABLE_FIELDS = ("membershipType", "status", "isFacilityAdmin", "endDate")

# User-facing error messages (clients may still match on these)
MSG_MISSING_FIELDS = "Missing required fields"
MSG_SLOT_UNAVAILABLE = "Time slot is already booked"
MSG_BOOKING_NOT_FOUND_OR_UNAUTHORIZED = "Booking not found or unauthorized"
MSG_CREATE_BOOKING_FAILED = "Failed to create booking"
MSG_CANCEL_BOOKING_FAILED = "Failed to cancel booking"

NOTIFICATION_LIST_LIMIT = 50

# Admin dashboard
DASHBOARD_RECENT_ACTIVITY_LIMIT = 10
# Court utilization assumes one bookable slot per court hour over a month
UTILIZATION_DAYS_PER_MONTH = 30
UTILIZATION_HOURS_PER_DAY = 12
