import logging

logger = logging.getLogger(__name__)


class WebhookAuthenticator:
    """Coarse origin filter for processor notifications.

    Accepts a request only when it carries an ``x-request-id`` header and a
    ``user-agent`` naming the processor. This is a header heuristic, not a
    signature check: anyone who copies the headers gets through.
    """

    def __init__(self, user_agent_marker: str = "mercadopago"):
        self.user_agent_marker = user_agent_marker.lower()

    def is_authentic(self, headers) -> bool:
        # header lookups are case-insensitive on Starlette's Headers; plain dicts get normalised
        if isinstance(headers, dict):
            headers = {k.lower(): v for k, v in headers.items()}
        request_id = headers.get("x-request-id")
        user_agent = headers.get("user-agent") or ""

        if request_id and self.user_agent_marker in user_agent.lower():
            logger.info("Webhook accepted: x-request-id=%s user-agent=%s", request_id, user_agent)
            return True

        logger.warning("Webhook rejected: x-request-id=%r user-agent=%r", request_id, user_agent)
        return False
