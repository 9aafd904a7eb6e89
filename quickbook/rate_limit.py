"""
Rate limiting configuration using slowapi.

Two tiers:
  • strict  – 10/min (opening a wizard session, submitting a booking)
  • default – 120/min (everything else; wizards poll their snapshot)

The limiter keys on client IP by default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["120/minute"])

# Named rate strings for use in @limiter.limit() decorators
STRICT = "10/minute"     # session creation and booking submission
DEFAULT = "120/minute"   # general API
