from dotenv import load_dotenv
from pydantic import BaseModel, Field
import os

load_dotenv()

def _to_int(v: str | None, default: int) -> int:
    if v is None or not v.strip():
        return default
    return int(v.strip())

def _to_float(v: str | None, default: float) -> float:
    if v is None or not v.strip():
        return default
    return float(v.strip())



class Settings(BaseModel):
    database_url: str = Field(default="sqlite:///data/morgan.db")
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/run.log")

    reddit_source_url: str = Field(default="https://www.reddit.com/r/wordpress.json")
    reddit_self_domain: str = Field(default="self.wordpress")
    reddit_user_agent: str = Field(default="morgan-ingest/0.1")
    http_timeout: float = Field(default=20.0)

    post_author_id: int = Field(default=1)
    default_cron_time: str = Field(default="hourly")


_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is not None:
        return _settings

    _settings = Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///data/morgan.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE", "logs/run.log"),
        reddit_source_url=os.getenv("REDDIT_SOURCE_URL", "https://www.reddit.com/r/wordpress.json"),
        reddit_self_domain=os.getenv("REDDIT_SELF_DOMAIN", "self.wordpress").strip().lower(),
        reddit_user_agent=os.getenv("REDDIT_USER_AGENT", "morgan-ingest/0.1"),
        http_timeout=_to_float(os.getenv("HTTP_TIMEOUT"), 20.0),
        post_author_id=_to_int(os.getenv("POST_AUTHOR_ID"), 1),
        default_cron_time=os.getenv("DEFAULT_CRON_TIME", "hourly"),
    )
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
