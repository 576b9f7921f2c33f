"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# Hash lengths
SHA256_HEX_LENGTH = 64

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100

# Password requirements
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
BCRYPT_ROUNDS = 12

# Token settings
ACCESS_TOKEN_TTL_MINUTES = 15
REFRESH_TOKEN_TTL_DAYS = 7
TOKEN_JTI_LENGTH = 16

# Token class tags embedded in the "type" claim
ACCESS_TOKEN_CLASS = "access"
REFRESH_TOKEN_CLASS = "refresh"

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_ACCESS_SECRET = "change-me-access-secret"
DEFAULT_INSECURE_REFRESH_SECRET = "change-me-refresh-secret"

# Client session agent
CLIENT_REQUEST_TIMEOUT_SECONDS = 10.0
ACCESS_TOKEN_STORAGE_KEY = "accessToken"
REFRESH_TOKEN_STORAGE_KEY = "refreshToken"
