from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./takeoff.db"
    COMPANY_NAME: str = "Steel Takeoff Estimator"
    LOG_LEVEL: str = "INFO"

    # Last-resort rates when neither project nor company settings have one
    DEFAULT_MATERIAL_RATE: float = 0.85   # $/lb
    DEFAULT_LABOR_RATE: float = 50.00     # $/hr
    DEFAULT_COATING_RATE: float = 0.0     # $/sf or $/lb

    # Editing
    SAVE_DEBOUNCE_SECONDS: float = 0.5
    HISTORY_LIMIT: int = 50

    class Config:
        env_file = ".env"


settings = Settings()
