import os
from dataclasses import dataclass

@dataclass(frozen=True)
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    data_dir: str = "gas_complaints_data"
    # When set, SMS goes through this relay so the API key stays server-side
    sms_relay_url: str = ""
    http_timeout: float = 10.0

    @property
    def remote_configured(self) -> bool:
        return bool(self.supabase_key) and len(self.supabase_url) > 5

def load_settings() -> Settings:
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL", "").strip(),
        supabase_key=os.getenv("SUPABASE_ANON_KEY", "").strip(),
        data_dir=os.getenv("GAS_COMPLAINTS_DATA_DIR", "").strip() or "gas_complaints_data",
        sms_relay_url=os.getenv("SMS_RELAY_URL", "").strip(),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "") or 10.0),
    )
