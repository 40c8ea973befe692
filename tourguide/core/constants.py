# tourguide/core/constants.py

"""
Core application constants.

These values centralize common configuration-like constants such as:
- Pagination defaults.
- Booking input limits.
- Common HTTP header names.
"""

# Pagination defaults
DEFAULT_PAGE: int = 1
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100

# Booking input limits
MIN_BOOKING_DURATION_MINUTES: int = 30
MIN_MEETING_POINT_LENGTH: int = 5
MAX_MESSAGE_LENGTH: int = 1000
MAX_REVIEW_COMMENT_LENGTH: int = 1000
MIN_RATING: int = 1
MAX_RATING: int = 5

# Location tracking
LOCATION_HISTORY_LIMIT: int = 50

# Common HTTP header names
HEADER_REQUEST_ID: str = "X-Request-ID"
HEADER_PROCESS_TIME: str = "X-Process-Time"
HEADER_STRIPE_SIGNATURE: str = "Stripe-Signature"
