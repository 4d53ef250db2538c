from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./fryplan.db"

    # Optimizer
    batch_temperature_tolerance: float = 10  # items within this many degrees share a phase
    rest_between_phases_minutes: float = 2

    # History
    recent_sessions_limit: int = 10

    # Input validation (Celsius / minutes)
    min_temperature: float = 80
    max_temperature: float = 260
    max_cook_minutes: float = 120

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://0.0.0.0:3000",
        "http://localhost",
        "http://127.0.0.1",
    ]


settings = Settings()
