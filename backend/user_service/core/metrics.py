"""Prometheus counters for the auth and verification flows (exposed at /metrics)."""

from prometheus_client import Counter

TOKEN_REFRESHES = Counter(
    "user_service_token_refreshes_total",
    "Refresh token exchanges by outcome",
    ["outcome"],
)
LOGOUTS = Counter(
    "user_service_logouts_total",
    "Logout requests by outcome",
    ["outcome"],
)
VERIFICATION_CODES_SENT = Counter(
    "user_service_verification_codes_sent_total",
    "Verification code mails by outcome",
    ["outcome"],
)
VERIFICATIONS = Counter(
    "user_service_verifications_total",
    "Verification code checks by outcome",
    ["outcome"],
)
