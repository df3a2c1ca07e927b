import os


class Settings:
    def __init__(self):
        self.app_name = "Ledgerline"
        self.api_version = "1.0.0"
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.secret_key = os.getenv("SECRET_KEY", "CHANGE_ME")
        self.SECRET_KEY = self.secret_key
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
        self.ACCESS_TOKEN_EXPIRE_MINUTES = self.access_token_expire_minutes
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./ledgerline.db")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.webhook_secret = os.getenv("WEBHOOK_SECRET", "CHANGE_ME")

        self.reference_currency = "USD"
        self.rates_api_url = os.getenv("RATES_API_URL", "https://open.er-api.com/v6/latest/USD")
        self.rates_timeout_seconds = float(os.getenv("RATES_TIMEOUT_SECONDS", "10"))

        self.llm_api_url = os.getenv("LLM_API_URL", "https://api.openai.com/v1")
        self.llm_api_key = os.getenv("LLM_API_KEY", "")
        self.llm_model = os.getenv("LLM_MODEL", "gpt-4o-mini")
        self.llm_timeout_seconds = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

        self.invoice_list_cap = int(os.getenv("INVOICE_LIST_CAP", "100"))
        self.invoice_page_size = int(os.getenv("INVOICE_PAGE_SIZE", "20"))
        self.payment_terms_days = int(os.getenv("PAYMENT_TERMS_DAYS", "30"))


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
