from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    allowed_origins: str = "http://localhost:4200"
    log_level: str = "INFO"

    formula_max_iterations: int = 3
    neonatal_band_max_days: int = 60
    catalog_fuzzy_threshold: int = 90
    catalog_enable_fuzzy_fallback: bool = True


settings = Settings()
