import logging
import os

from pydantic import BaseModel


class Settings(BaseModel):
    api_base: str = os.getenv("TRANSCODER_API_BASE", "http://localhost:8080/api")
    api_token: str | None = os.getenv("TRANSCODER_API_TOKEN")
    credential_store: str = os.getenv("TRANSCODER_CREDENTIAL_STORE", "memory")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    credential_profile: str = os.getenv("TRANSCODER_PROFILE", "default")
    page_size: int = int(os.getenv("TRANSCODER_PAGE_SIZE", 10))
    recent_tasks_limit: int = int(os.getenv("TRANSCODER_RECENT_LIMIT", 5))
    refresh_interval_seconds: float = float(os.getenv("TRANSCODER_REFRESH_SECONDS", 30))
    log_level: str = os.getenv("TRANSCODER_LOG_LEVEL", "INFO")


def setup_logging(cfg: Settings) -> None:
    logging.basicConfig(
        level=cfg.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = Settings()
