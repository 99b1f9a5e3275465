from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""
    # API Keys
    claude_api_key: str | None = None
    database_url: str = "sqlite+aiosqlite:///./skinplan.db"

    # Rule store / catalog snapshots
    rules_path: str = "data/rules.json"
    catalog_path: str = "data/products.json"

    # Plan generation
    max_alternates: int = 5
    daily_tip_model: str = "anthropic:claude-sonnet-4-5-20250929"

    log_level: str = "INFO"

    class Config:
        env_file = '.env'


@lru_cache
def get_settings() -> Settings:
    return Settings()
