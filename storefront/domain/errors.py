# storefront/domain/errors.py
"""Error taxonomy shared by the API, the services and the client cache."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500
    title = "Internal server error"


class ValidationError(StorefrontError):
    """Malformed input. Never retried automatically."""

    status_code = 400
    title = "Invalid request data"


class EmptyCartError(ValidationError):
    title = "Cart is empty"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Cannot checkout with an empty cart")


class NotFoundError(StorefrontError):
    """Cart or order absent."""

    status_code = 404

    def __init__(self, resource: str, key):
        self.resource = resource
        self.key = key
        self.title = f"{resource} not found"
        super().__init__(f"No {resource.lower()} found for {key}")


class StoreUnavailableError(StorefrontError):
    """The cart store cannot be reached; callers fall back to their local copy."""

    status_code = 503
    title = "Database unavailable"

    def __init__(self, message: str = "Cart store is not reachable"):
        super().__init__(message)


class ExternalProviderError(StorefrontError):
    """A payment provider API call failed. Not retried internally."""

    status_code = 500

    def __init__(self, title: str, provider_message: str | None = None):
        self.title = title
        self.provider_message = provider_message
        super().__init__(provider_message or title)


class SignatureVerificationError(StorefrontError):
    """Webhook payload failed authenticity checks."""

    status_code = 400
    title = "Webhook signature verification failed"


class BackendError(StorefrontError):
    """Unexpected 5xx answer seen by the HTTP client."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)
