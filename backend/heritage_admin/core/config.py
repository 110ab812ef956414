from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Heritage Admin Console"
    debug: bool = False

    # Backend tables
    database_url: str = f"sqlite:///{Path(__file__).resolve().parent.parent.parent / 'heritage_admin.db'}"
    auto_create_tables: bool = True  # dev/test only, production schema is owned by the platform

    # Staff auth
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60
    staff_type_keys: list[str] = ["admin", "executive"]

    # Serverless functions
    functions_url: str = ""  # e.g. https://<project>.supabase.co/functions/v1
    functions_api_key: str = ""
    email_function: str = "quick-service"
    push_function: str = "heritage-send-fcm"
    translate_function: str = "heritage-translate"
    functions_timeout_seconds: float = 30.0

    supported_languages: list[str] = ["en", "hi", "gu", "ja", "es", "fr"]

    # Chat / realtime
    chat_message_limit: int = 50
    realtime_buffer_size: int = 256
    change_feed_enabled: bool = True
    change_feed_interval_seconds: float = 2.0
    change_feed_lookback_seconds: float = 30.0  # how far behind its watermark the feed re-reads

    # Reports
    default_report_days: int = 30
    default_currency: str = "INR"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "HERITAGE_ADMIN_",
    }


settings = Settings()
