import os


class Settings:
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change_me_in_prod")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_MINUTES: int = int(os.getenv("JWT_EXPIRES_MINUTES", "720"))
    # Loyalty awarded once per completed rental
    LOYALTY_POINTS_PER_BOOKING: int = int(os.getenv("LOYALTY_POINTS_PER_BOOKING", "10"))
    DEFAULT_PICKUP_LOCATION: str = os.getenv("DEFAULT_PICKUP_LOCATION", "Main Office")
    DEFAULT_RETURN_TIME: str = os.getenv("DEFAULT_RETURN_TIME", "10:00 AM")


settings = Settings()
