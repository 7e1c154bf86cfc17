"""Rate limiting configuration using slowapi.

A module-level Limiter shared by the auth router (per-endpoint limits on
credential endpoints) and wired into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Default: 60 requests/minute per client IP for all endpoints.
# Credential endpoints override with @limiter.limit("N/period").
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)

AUTH_RATE_LIMIT = "10/minute"
