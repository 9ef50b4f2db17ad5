import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

logger = logging.getLogger(__name__)

PLACEHOLDER_ACCESS_TOKEN = "TEST-YOUR-ACCESS-TOKEN"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Process configuration, read from the environment once at startup."""

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL")
        if not self.database_url:
            raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

        self.jwt_secret = os.getenv("JWT_SECRET", "")
        self.app_url = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self.mercado_pago_access_token = os.getenv("MERCADO_PAGO_ACCESS_TOKEN", "")
        self.mercado_pago_sandbox = _as_bool(os.getenv("MERCADO_PAGO_SANDBOX", "false"))
        self.payment_currency = os.getenv("PAYMENT_CURRENCY", "ARS")

        # Must stay well below the processor's own webhook retry timeout
        self.gateway_timeout = float(os.getenv("GATEWAY_TIMEOUT", "5.0"))
        self.gateway_max_retries = int(os.getenv("GATEWAY_MAX_RETRIES", "1"))

        self.webhook_user_agent_marker = os.getenv("WEBHOOK_USER_AGENT_MARKER", "mercadopago").lower()

    @property
    def has_real_access_token(self) -> bool:
        token = self.mercado_pago_access_token
        return bool(token) and token != PLACEHOLDER_ACCESS_TOKEN

    def warn_on_placeholders(self):
        if not self.has_real_access_token:
            logger.warning(
                "MERCADO_PAGO_ACCESS_TOKEN is not set or is a placeholder. "
                "Real payments will not work."
            )
        if not self.jwt_secret:
            logger.warning("JWT_SECRET is not set. Every bearer token will be rejected.")


settings = Settings()
