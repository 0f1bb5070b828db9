"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EMPLOYEE_ID_RETRIES = 5
EMPLOYEE_ID_PREFIX_LENGTH = 8
EMPLOYEE_ID_TOTAL_LENGTH = 14
EMPLOYEE_ID_COUNTER_LENGTH = EMPLOYEE_ID_TOTAL_LENGTH - EMPLOYEE_ID_PREFIX_LENGTH

ANONYMIZED_PLACEHOLDER = "ANONYMIZED"
ANONYMIZED_EMAIL_DOMAIN = "example.invalid"

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000
STATISTICS_WINDOW_DAYS = 30

EMPLOYEE_CREATED_EVENT = "EMPLOYEE_CREATED"
SIGNATURE_HEADER = "X-Signature-SHA256"
SIGNATURE_TIMESTAMP_HEADER = "X-Signature-Timestamp"
