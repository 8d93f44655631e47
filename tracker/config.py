import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///finance.db"
    seed_path: str = "data/seed.json"
    top_categories: int = 5
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    defaults = Settings()
    return Settings(
        database_url=env.get("FINANCE_DATABASE_URL", defaults.database_url),
        seed_path=env.get("FINANCE_SEED_PATH", defaults.seed_path),
        top_categories=int(env.get("FINANCE_TOP_CATEGORIES", defaults.top_categories)),
        log_level=env.get("FINANCE_LOG_LEVEL", defaults.log_level).upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
