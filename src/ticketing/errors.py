"""Error taxonomy for the ticketing context.

Validation-style failures extend Protean's ``ValidationError`` so they carry
a field-keyed message dict and map to client errors. Gateway failures are a
separate hierarchy: callers retry them, never the domain.
"""

from protean.exceptions import ValidationError


class StockUnavailableError(ValidationError):
    """Requested quantities exceed the advisory stock check at checkout.

    ``shortages`` maps product id to ``{"requested": n, "available": m}``.
    """

    def __init__(self, shortages: dict[str, dict[str, int]]):
        self.shortages = shortages
        super().__init__(
            {
                product_id: [f"Requested {s['requested']}, only {s['available']} available"]
                for product_id, s in shortages.items()
            }
        )


class InvalidStateError(ValidationError):
    """Operation not allowed in the aggregate's current status."""

    def __init__(self, field: str, message: str, current_status: str | None = None):
        self.current_status = current_status
        super().__init__({field: [message]})


class GatewayError(Exception):
    """Base class for failures talking to the payment gateway."""


class GatewayUnavailableError(GatewayError):
    """The gateway rejected a call or could not be reached."""

    def __init__(self, operation: str, reason: str | None = None):
        self.operation = operation
        self.reason = reason or "Payment gateway error, please try again later"
        super().__init__(f"{operation} failed: {self.reason}")


class WebhookSignatureError(GatewayError):
    """A webhook payload could not be authenticated."""
