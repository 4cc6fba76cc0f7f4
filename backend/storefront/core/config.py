from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Storefront API"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DOMAIN: str = "example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/storefront.db"

    # Frontend base URL used for checkout redirects
    CLIENT_URL: str = "http://localhost:5173"
    CURRENCY: str = "usd"

    # Access tokens are issued by the auth service and only verified here
    ACCESS_TOKEN_SECRET: str = "change-me"

    # Stripe
    stripe_api_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_timeout_seconds: int = 10
    stripe_max_network_retries: int = 2

    # Gift coupons
    GIFT_COUPON_THRESHOLD_CENTS: int = 20000
    GIFT_COUPON_DISCOUNT_PERCENTAGE: int = 10
    GIFT_COUPON_VALIDITY_DAYS: int = 30
    GIFT_COUPON_CODE_PREFIX: str = "GIFT"
    GIFT_COUPON_CODE_LENGTH: int = 8

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"


settings = Settings()
