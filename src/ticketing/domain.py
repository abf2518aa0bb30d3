"""Ticketing bounded context: payment lifecycle and ticket issuance.

Turns a cart into a gateway-backed Payment, reconciles gateway webhooks,
issues scannable tickets once per paid payment and handles partial refunds.
"""

import os

from protean.domain import Domain

from ticketing.utils.logging import configure_logging, get_logger

configure_logging(log_dir=os.getenv("TICKETING_LOG_DIR", "logs"))

ticketing = Domain(name="ticketing")

logger = get_logger(__name__)
