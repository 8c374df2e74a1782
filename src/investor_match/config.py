"""Configuration — dataset location, model parameters, matching thresholds."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class StageAskThresholds(BaseModel):
    """Fund ask ($M) above which a later stage becomes relevant."""

    series_b: float = Field(default=10.0, ge=0.0)
    series_c: float = Field(default=30.0, ge=0.0)
    series_d: float = Field(default=80.0, ge=0.0)


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_fast_model: str = "claude-3-haiku-20240307"

    database_url: str = "sqlite:///data/investor_data.db"
    database_echo: bool = False

    classifier: Literal["llm", "rules"] = "llm"
    semantic_matching: bool = False
    embedding_model: str = "all-MiniLM-L6-v2"

    seed_ask_threshold: float = 1.0
    stage_ask_thresholds: StageAskThresholds = StageAskThresholds()

    aggregation_workers: int = Field(default=1, ge=1)
    max_results: int = Field(default=100, ge=1)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
