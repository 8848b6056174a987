import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # input / output locations
    targets_path: Path = Field(default=Path("product_links/product_data.json"), alias="SCRAPER_TARGETS_PATH")
    url_field: str = Field(default="product_link", alias="SCRAPER_URL_FIELD")
    results_dir: Path = Field(default=Path("results"), alias="SCRAPER_RESULTS_DIR")
    failed_dir: Path = Field(default=Path("failed"), alias="SCRAPER_FAILED_DIR")
    logs_dir: Path = Field(default=Path("logs"), alias="SCRAPER_LOGS_DIR")

    # retry / pacing
    retry_limit: int = Field(default=3, alias="SCRAPER_RETRY_LIMIT")
    retry_delay_ms: int = Field(default=2000, alias="SCRAPER_RETRY_DELAY_MS")
    request_delay_ms: int = Field(default=2000, alias="SCRAPER_REQUEST_DELAY_MS")
    navigation_timeout_ms: int = Field(default=30000, alias="SCRAPER_NAVIGATION_TIMEOUT_MS")
    content_timeout_ms: int = Field(default=10000, alias="SCRAPER_CONTENT_TIMEOUT_MS")
    wait_until: str = Field(default="networkidle", alias="SCRAPER_WAIT_UNTIL")

    # session
    batch_size: int = Field(default=50, alias="SCRAPER_BATCH_SIZE")
    headless: bool = Field(default=True, alias="SCRAPER_HEADLESS")
    user_agent: str = Field(default=DEFAULT_UA, alias="SCRAPER_USER_AGENT")
    accept_language: str = Field(default="en-US,en;q=0.9", alias="SCRAPER_ACCEPT_LANGUAGE")

    # page contract
    content_selector: str = Field(default=".ProductMeta__Description", alias="SCRAPER_CONTENT_SELECTOR")
    keep_unclassified: bool = Field(default=False, alias="SCRAPER_KEEP_UNCLASSIFIED")
    id_marker: str = Field(default="/products/", alias="SCRAPER_ID_MARKER")
    include_product_id: bool = Field(default=True, alias="SCRAPER_INCLUDE_PRODUCT_ID")

    @field_validator("retry_limit", "batch_size")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator(
        "retry_delay_ms", "request_delay_ms", "navigation_timeout_ms", "content_timeout_ms"
    )
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


def _load_dotenv():
    # Load from repo root if present, otherwise rely on environment variables.
    root_env = Path(__file__).resolve().parents[1] / ".env"
    if root_env.exists():
        load_dotenv(root_env)
    else:
        load_dotenv()


def settings_from_env(env=None) -> Settings:
    try:
        return Settings(**(os.environ if env is None else env))
    except ValidationError as exc:
        bad = [f"{e['loc'][0]} ({e['msg']})" for e in exc.errors()]
        raise RuntimeError(f"Invalid scraper configuration: {', '.join(bad)}") from exc


@lru_cache()
def get_settings() -> Settings:
    _load_dotenv()
    return settings_from_env()
