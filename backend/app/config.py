from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Clinic Records Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # Shared document store (JSONBin)
    JSONBIN_BASE_URL: str = "https://api.jsonbin.io/v3/b"
    JSONBIN_BIN_ID: str = ""
    JSONBIN_MASTER_KEY: str = ""

    # Store client behaviour
    STORE_MAX_ATTEMPTS: int = 3
    STORE_RETRY_DELAY_SECONDS: float = 0.5
    STORE_TIMEOUT_SECONDS: float = 10.0
    STORE_DEGRADE_READS: bool = True  # failed reads return an empty document
    STORE_SERIALIZE_WRITES: bool = True  # one read-modify-write at a time per process

    # Sessions
    JWT_SECRET: str = "dev-jwt-secret-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 7  # 7 days
    SESSION_COOKIE_SECURE: bool = False

    # SMS
    SMS_COUNTRY_CODE: str = "91"
    SMS_SIMULATED_DELAY_SECONDS: float = 0.5
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""

    # Translation proxy (RapidAPI Google Translate)
    RAPIDAPI_KEY: str = ""
    TRANSLATE_API_URL: str = "https://google-translate1.p.rapidapi.com/language/translate/v2"
    TRANSLATE_API_HOST: str = "google-translate1.p.rapidapi.com"
    TRANSLATE_TIMEOUT_SECONDS: float = 15.0

    @field_validator("STORE_MAX_ATTEMPTS", mode="before")
    @classmethod
    def at_least_one_attempt(cls, v):
        if v is None or v == "":
            return 3
        return max(int(v), 1)

    @field_validator("SMS_COUNTRY_CODE", mode="before")
    @classmethod
    def strip_country_code(cls, v):
        return str(v).strip().lstrip("+")

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
