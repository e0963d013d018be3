from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings


class WaitMode(str, Enum):
    FIXED = "fixed"
    EVENT_DRIVEN = "event_driven"
    HYBRID = "hybrid"


class Settings(BaseSettings):
    icbc_last_name: str = ""
    icbc_licence_number: str = ""
    icbc_keyword: str = ""
    icbc_login_url: str = "https://onlinebusiness.icbc.com/webdeas-ui/login;type=driver"

    preferred_location: str = ""
    preferred_days: str = ""
    time_preference: str = "any"
    date_range_start: str = ""
    date_range_end: str = ""

    headless: bool = True
    chromedriver_path: str = ""
    browser_user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    viewport_width: int = 1920
    viewport_height: int = 1080

    default_timeout_seconds: float = 30.0
    navigation_timeout_seconds: float = 60.0
    url_wait_timeout_seconds: float = 30.0
    element_wait_timeout_seconds: float = 15.0
    confirmation_timeout_seconds: float = 10.0

    wait_mode: WaitMode = WaitMode.HYBRID

    retry_max_attempts: int = 3
    retry_delay_seconds: float = 2.0

    debug_snapshots: bool = True
    debug_snapshot_dir: str = "/tmp"

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    user_phone_number: str = ""

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("retry_max_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("At least 1 retry attempt is required")
        return value

    @field_validator("retry_delay_seconds")
    @classmethod
    def _bounded_retry_delay(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Retry delay must be positive")
        if value > 30:
            raise ValueError("Retry delay should not exceed 30 seconds")
        return value


settings = Settings()
