from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    app_env: str = os.getenv("APP_ENV", "development")

    # Text generation (Gemini through langchain)
    google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
    top_p: float = float(os.getenv("MODEL_TOP_P", "0.9"))
    max_output_tokens: int = int(os.getenv("MODEL_MAX_OUTPUT_TOKENS", "500"))

    # Search backend (Exa streaming answers)
    exa_api_key: Optional[str] = os.getenv("EXA_API_KEY")
    exa_url: str = os.getenv("EXA_URL", "https://api.exa.ai/chat/completions")

    # Image backend (FLUX)
    flux_secret_token: Optional[str] = os.getenv("FLUX_SECRET_TOKEN")
    flux_url: str = os.getenv("FLUX_URL", "https://api.us1.bfl.ai/v1/flux-pro-1.1")

    # Chat platform (Zoom Team Chat)
    zoom_client_id: Optional[str] = os.getenv("ZOOM_CLIENT_ID")
    zoom_client_secret: Optional[str] = os.getenv("ZOOM_CLIENT_SECRET")
    zoom_bot_jid: Optional[str] = os.getenv("ZOOM_BOT_JID")
    zoom_token_url: str = os.getenv(
        "ZOOM_TOKEN_URL", "https://zoom.us/oauth/token?grant_type=client_credentials"
    )
    zoom_chat_url: str = os.getenv("ZOOM_CHAT_URL", "https://api.zoom.us/v2/im/chat/messages")

    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "15.0"))

    # Conversation memory
    history_max_length: int = int(os.getenv("HISTORY_MAX_LENGTH", "10"))
    context_expiration_seconds: float = float(os.getenv("CONTEXT_EXPIRATION_SECONDS", "86400"))
    context_sweep_seconds: float = float(os.getenv("CONTEXT_SWEEP_SECONDS", "3600"))

    # Image polling
    poll_max_attempts: int = int(os.getenv("POLL_MAX_ATTEMPTS", "10"))
    poll_initial_delay: float = float(os.getenv("POLL_INITIAL_DELAY", "2.0"))
    poll_backoff_factor: float = float(os.getenv("POLL_BACKOFF_FACTOR", "1.5"))
    poll_max_delay: float = float(os.getenv("POLL_MAX_DELAY", "15.0"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
