from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str
    JWT_ISS: str = "pos"
    JWT_EXP_MIN: int = 8*60
    TZ: str = "Asia/Jakarta"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000"
    TAX_RATE: Decimal = Decimal("0.10")
    RESTAURANT_NAME: str = "SOTO IBUK SENOPATI"
    RESTAURANT_ADDRESS: str = "Jl. Tulodong Atas 1 No 3A|Kebayoran Baru Jakarta"  # "|" separates receipt lines
    RECEIPT_FOOTER: str = "Terima kasih"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()
