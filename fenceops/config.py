from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./fenceops.db"
    COMPANY_NAME: str = "Discount Fence USA"

    # Human-readable project codes: P2-00001
    PROJECT_CODE_PREFIX: str = "P2-"
    PROJECT_CODE_WIDTH: int = 5

    # BOM defaults
    DEFAULT_LINE_COUNT: int = 1
    PRICE_DECIMALS: int = 2

    # Seed default catalog on startup (idempotent)
    AUTO_SEED: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
