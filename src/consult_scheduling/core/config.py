"""
Engine configuration using python-dotenv.

This module loads environment variables from a .env file into os.environ
and exposes the scheduling engine's tunables as module constants plus an
injectable EngineSettings bundle.
"""

import os
import pathlib
from dataclasses import dataclass
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or "PYTEST_CURRENT_TEST" in os.environ

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # repository root
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def get_database_url() -> str:
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "sqlite:///./consult_scheduling.db"
    )


DATABASE_URL = get_database_url()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Scheduling policy
DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "30"))
BUFFER_MINUTES = int(os.getenv("BUFFER_MINUTES", "15"))
ALTERNATIVE_SEARCH_DAYS = int(os.getenv("ALTERNATIVE_SEARCH_DAYS", "7"))
MAX_ALTERNATIVES = int(os.getenv("MAX_ALTERNATIVES", "3"))
SCHEDULE_CHANGE_HORIZON_DAYS = int(os.getenv("SCHEDULE_CHANGE_HORIZON_DAYS", "90"))

# Repository access
REPOSITORY_TIMEOUT_SECONDS = float(os.getenv("REPOSITORY_TIMEOUT_SECONDS", "10"))
MAX_CONCURRENT_PROVIDER_QUERIES = int(os.getenv("MAX_CONCURRENT_PROVIDER_QUERIES", "5"))


@dataclass(frozen=True)
class EngineSettings:
    """
    Tunables shared by the availability, conflict and schedule-change services.

    Services receive an instance through their constructor so tests can
    override single values without touching the environment.
    """
    default_slot_duration_minutes: int = DEFAULT_SLOT_DURATION_MINUTES
    buffer_minutes: int = BUFFER_MINUTES
    alternative_search_days: int = ALTERNATIVE_SEARCH_DAYS
    max_alternatives: int = MAX_ALTERNATIVES
    schedule_change_horizon_days: int = SCHEDULE_CHANGE_HORIZON_DAYS
    repository_timeout_seconds: float = REPOSITORY_TIMEOUT_SECONDS
    max_concurrent_provider_queries: int = MAX_CONCURRENT_PROVIDER_QUERIES

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from the values loaded at import time."""
        return cls()
