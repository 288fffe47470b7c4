from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Mercado Livre (OAuth token obtained out of band)
    ml_access_token: str = ""
    ml_seller_id: str = ""  # empty = resolve via /users/me
    ml_api_url: str = "https://api.mercadolibre.com"

    # Listing source
    source_timeout_seconds: float = 15.0
    source_page_size: int = 50

    # History queries
    snapshot_list_limit: int = 30
    changes_lookback_days: int = 7
    changes_limit: int = 100

    # Database
    database_path: str = "data/sellerwatch.db"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True
    log_file: str = ""


def get_settings() -> Settings:
    return Settings()
