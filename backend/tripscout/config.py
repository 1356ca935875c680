from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Amadeus
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"
    token_expiry_buffer_seconds: int = 30

    # Open-Meteo
    open_meteo_forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    open_meteo_geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"

    # Outbound HTTP
    http_timeout_seconds: float = 5.0

    # Caches
    geocoding_cache_ttl_seconds: int = 24 * 60 * 60  # 24 hours
    geocoding_cache_max_size: int = 500
    weather_cache_ttl_seconds: int = 60 * 60  # 1 hour
    weather_cache_max_size: int = 1000

    # Geocoding batch pacing between successive network lookups
    geocoding_batch_delay_ms: int = 100

    # Search
    default_currency: str = "PLN"
    max_recommendations: int = 10
    max_forecast_days: int = 7
    search_timeout_seconds: float = 30.0

    # CORS
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
