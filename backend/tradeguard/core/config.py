from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "tradeguard"
    app_env: str = "development"

    database_url: str = "sqlite:////data/tradeguard.sqlite"

    # JWT (identity tokens issued by the primary auth provider)
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60

    # TOTP
    TOTP_ISSUER: str = "TradingApp"
    TOTP_STEP_SECONDS: int = 30
    TOTP_WINDOW_STEPS: int = 1

    # Failed-attempt lockout shared by 2FA and PIN checks
    MAX_FAILED_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 15
    ATTEMPT_STORE: str = "memory"  # "memory" | "database"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
