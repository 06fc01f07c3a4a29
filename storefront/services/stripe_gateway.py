# storefront/services/stripe_gateway.py
import json
from typing import Any, Dict, List, Optional

import stripe

from storefront.domain.errors import ExternalProviderError, SignatureVerificationError
from storefront.utils.settings import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class StripeGateway:
    """
    The two capabilities used from Stripe: hosted checkout sessions and
    signed webhook events. Calls are not retried here.
    """

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None):
        self.api_key = api_key if api_key is not None else STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else STRIPE_WEBHOOK_SECRET

    def _require_key(self, title: str) -> str:
        if not self.api_key:
            raise ExternalProviderError(title, "STRIPE_SECRET_KEY environment variable is not set")
        return self.api_key

    def create_checkout_session(self, **params) -> Dict[str, Any]:
        title = "Failed to create checkout session"
        api_key = self._require_key(title)
        try:
            session = stripe.checkout.Session.create(api_key=api_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout error: {e.user_message or e}")
            raise ExternalProviderError(title, e.user_message or str(e)) from e
        return session.to_dict()

    def retrieve_session(self, session_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
        title = "Failed to retrieve session"
        api_key = self._require_key(title)
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=api_key, expand=expand or [])
        except stripe.StripeError as e:
            logger.error(f"Stripe session retrieval error for {session_id}: {e.user_message or e}")
            raise ExternalProviderError(title, e.user_message or str(e)) from e
        return session.to_dict()

    def verify_event(self, payload: bytes, signature: str | None) -> Dict[str, Any]:
        """
        Check the Stripe-Signature header against the raw body. Only a verified
        body is parsed for application use.
        """
        if not self.webhook_secret:
            raise SignatureVerificationError("STRIPE_WEBHOOK_SECRET environment variable is not set")
        if not signature:
            raise SignatureVerificationError("Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise SignatureVerificationError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise SignatureVerificationError(str(e)) from e

        return json.loads(payload)
