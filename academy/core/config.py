from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    SQL_ECHO: bool = False

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120  # 2 hours

    TIMEZONE: str = "Asia/Kolkata"
    CURRENCY: str = "INR"

    DEFAULT_HOURLY_RATE: int = 1500
    DEFAULT_SESSION_DURATION: int = 60  # minutes

    # Monthly accrual job, runs on PAYROLL_DAY at PAYROLL_HOUR:00
    PAYROLL_ENABLED: bool = False
    PAYROLL_DAY: int = 1
    PAYROLL_HOUR: int = 0
    PAYROLL_MAX_CONCURRENCY: int = 4

    class Config:
        env_file = ".env"


settings = Settings()
