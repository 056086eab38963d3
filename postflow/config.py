# postflow/config.py
import os


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Environment-driven settings. Defaults are for local development only;
    a deployment must override the secrets and URLs.
    Keyword arguments override the environment (used by tests).
    """

    def __init__(self, **overrides):
        self.environment = os.getenv("ENVIRONMENT", "development").lower()

        # storage
        self.database_url = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./postflow.db")
        self.db_auto_create = _as_bool(os.getenv("DB_AUTO_CREATE", "false"))
        self.redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.uploads_dir = os.getenv("UPLOADS_DIR", "uploads")
        self.templates_dir = os.getenv("TEMPLATES_DIR", "templates")

        # tokens
        self.secret_key = os.getenv("JWT_SECRET", "dev_secret")
        self.algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))

        # automation engine
        self.backend_url = os.getenv("BACKEND_URL", "http://localhost:8000")
        self.n8n_webhook_url = os.getenv("N8N_WEBHOOK_URL", "http://localhost:5678/webhook/post-automation")
        self.n8n_base_url = os.getenv("N8N_BASE_URL", "http://localhost:5678")
        self.n8n_email = os.getenv("N8N_EMAIL", "")
        self.n8n_password = os.getenv("N8N_PASSWORD", "")
        self.n8n_webhook_secret = os.getenv("N8N_WEBHOOK_SECRET") or None
        self.automation_timeout_seconds = float(os.getenv("AUTOMATION_TIMEOUT_SECONDS", "30"))

        # mail
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from = os.getenv("SMTP_FROM", "no-reply@example.com")
        self.support_email = os.getenv("SUPPORT_EMAIL", "support@example.com")
        self.return_reset_code = _as_bool(os.getenv("RETURN_RESET_CODE", "false"))

        # back-office
        self.admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com").lower()
        self.admin_password = os.getenv("ADMIN_PASSWORD", "Admin@123")
        self.frontend_origins = [o.strip() for o in os.getenv("FRONTEND_ORIGIN", "").split(",") if o.strip()]

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"unknown setting: {key}")
            setattr(self, key, value)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user)
