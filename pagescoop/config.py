"""Runtime settings read from the environment (and a .env file)."""

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = 'PAGESCOOP_'


class ScrapeSettings(BaseModel):
    """Settings shared by every job in a run.

    Attributes:
        output_dir: Collector output directory (defaults to .pagescoop/output)
        poll_attempts: Checks made while waiting for a wait-for element
        poll_interval: Seconds between those checks
        image_timeout: Timeout in seconds for each image download
        fetcher: Page fetcher to use
        log_level: Level for the local log file

    """

    output_dir: str | None = None
    poll_attempts: int = Field(default=50, ge=1)
    poll_interval: float = Field(default=0.2, ge=0)
    image_timeout: float = Field(default=15.0, gt=0)
    fetcher: Literal['simple', 'playwright'] = 'simple'
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, env_file: str | None = None) -> 'ScrapeSettings':
        """Build settings from PAGESCOOP_* environment variables.

        Args:
            env_file: Optional .env file to load first. Defaults to the nearest .env.

        """
        load_dotenv(env_file)

        values: dict[str, str] = {}
        for name in cls.model_fields:
            raw = os.getenv(f'{ENV_PREFIX}{name.upper()}')
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        return cls.model_validate(values)
