"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")

# ── Booking backend ───────────────────────────────────────────────────────

BOOKING_API_URL: str = os.getenv("BOOKING_API_URL", "http://localhost:3000/api")
BOOKING_API_TIMEOUT: float = float(os.getenv("BOOKING_API_TIMEOUT", "15"))

# ── JWT ───────────────────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRY_DAYS: int = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

# ── Reservation hold ──────────────────────────────────────────────────────

# Countdown resolution. Must stay at or below one second.
RESERVATION_TICK_SECONDS: float = min(
    1.0, float(os.getenv("RESERVATION_TICK_SECONDS", "1.0"))
)

# ── Draft defaults ────────────────────────────────────────────────────────

DEFAULT_DURATION_MINUTES: int = int(os.getenv("DEFAULT_DURATION_MINUTES", "120"))
DURATION_OPTIONS: list[int] = [
    int(v) for v in os.getenv("DURATION_OPTIONS", "60,90,120,150,180").split(",") if v.strip()
]
DEFAULT_COURT_FORMAT: str = os.getenv("DEFAULT_COURT_FORMAT", "padel")

# ── Clubs ─────────────────────────────────────────────────────────────────

# IANA zone used when a club does not publish its own.
DEFAULT_CLUB_TIMEZONE: str = os.getenv("DEFAULT_CLUB_TIMEZONE", "Europe/Kyiv")

# Opening window assumed when a club publishes no business hours.
BUSINESS_START_HOUR: int = int(os.getenv("BUSINESS_START_HOUR", "9"))
BUSINESS_END_HOUR: int = int(os.getenv("BUSINESS_END_HOUR", "22"))

# ── Wizard sessions ───────────────────────────────────────────────────────

WIZARD_SESSION_TTL_SECONDS: float = float(os.getenv("WIZARD_SESSION_TTL_SECONDS", "1800"))
WIZARD_SWEEP_INTERVAL: float = float(os.getenv("WIZARD_SWEEP_INTERVAL", "60"))
