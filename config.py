from dotenv import load_dotenv
from pydantic import BaseModel
from typing import Optional
import os

DEFAULT_GITLAB_API_BASE_URL = "https://gitlab.com/api/v4"
DEFAULT_STATUS_CONTEXT = "Semantic Merge Request"


class Settings(BaseModel):
    webhook_secret: str
    gitlab_api_base_url: str = DEFAULT_GITLAB_API_BASE_URL
    gitlab_token: str
    host: str = "0.0.0.0"
    port: int = 8000
    status_context: str = DEFAULT_STATUS_CONTEXT
    status_target_url: Optional[str] = None
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment (and a `.env` file if present)."""
    load_dotenv()

    secret = os.getenv("WEBHOOK_SECRET")
    if not secret:
        raise RuntimeError("WEBHOOK_SECRET must be set")

    return Settings(
        webhook_secret=secret,
        gitlab_api_base_url=os.getenv("GITLAB_API_BASE_URL", DEFAULT_GITLAB_API_BASE_URL),
        # The API token used to default to the webhook secret
        gitlab_token=os.getenv("GITLAB_TOKEN") or secret,
        host=os.getenv("WEBHOOK_SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("WEBHOOK_SERVER_PORT", "8000")),
        status_context=os.getenv("STATUS_CONTEXT", DEFAULT_STATUS_CONTEXT),
        status_target_url=os.getenv("STATUS_TARGET_URL") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
