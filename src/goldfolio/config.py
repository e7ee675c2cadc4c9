from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 54377
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "goldfolio"
    redis_url: str = "redis://localhost:6379/0"
    goldapi_url: str = "https://www.goldapi.io/api/XAU/INR"
    goldapi_keys: str = ""  # Comma-separated, tried in rotation
    goldapi_timeout: float = 30.0
    market_tz_offset_minutes: int = 330  # IST (UTC+5:30)
    fallback_price_24k: float = 7200.0  # INR per gram
    min_sane_price_24k: float = 1000.0
    retail_markup: float = 1.075  # Jeweller premium over spot for the retail price series
    annualized_min_days: int = 30
    debug: bool = True

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def goldapi_key_list(self) -> list[str]:
        return [k.strip() for k in self.goldapi_keys.split(",") if k.strip()]

    class Config:
        env_file = ".env"


settings = Settings()
