from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

KNOWLEDGE_DIR = Path(__file__).resolve().parent / "knowledge"


class Settings(BaseSettings):
    page_access_token: str = ""
    verify_token: str = ""
    app_secret: Optional[str] = None
    graph_api_version: str = "v17.0"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_timeout_seconds: float = 60.0

    nudge_after_seconds: float = 10 * 60
    finalize_after_seconds: float = 12 * 60
    advisor_exit_button_after: int = 6

    whatsapp_url: str = "https://wa.me/51904805167"

    catalog_path: Path = KNOWLEDGE_DIR / "catalog.yaml"
    promos_path: Path = KNOWLEDGE_DIR / "promos.yaml"
    system_prompt_path: Path = KNOWLEDGE_DIR / "SYSTEM_PROMPT.txt"

    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def get_settings() -> Settings:
    return settings
