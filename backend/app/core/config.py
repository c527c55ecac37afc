from pydantic import model_validator
from pydantic_settings import BaseSettings
from typing import Dict, List
import json


class Settings(BaseSettings):
    # Application
    app_name: str = "Tiered Presale Ledger API"
    debug: bool = False
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Price ladder. Decimal strings so they convert exactly into fixed point.
    phase_count: int = 10
    first_phase_base_price_usd: str = "0.30"
    phase_base_price_step_usd: str = "0.02"
    price_increment_usd: str = "0.01"
    volume_step_tokens: int = 100_000
    max_steps: int = 20

    # Settlement
    min_burn_pct: int = 15
    max_burn_pct: int = 85
    # Receives forwarded purchase payments and stable settlement payouts
    treasury_address: str = "0x000000000000000000000000000000000000dEaD"
    # Share of every purchase payment kept in the asset reserve to back
    # settlement payouts; the rest is forwarded to the treasury
    reserve_share_pct: int = 50

    # Payment assets: symbol -> decimals
    payment_assets: str = '{"USDT": 18, "USDC": 18}'
    stable_asset_symbol: str = "USDT"

    # "propagate" aborts the triggering call when a price observer fails,
    # "log" records the failure and carries on
    price_observer_errors: str = "propagate"

    # Notification indexer
    indexer_enabled: bool = True
    indexer_interval_seconds: float = 5.0

    # Database (Tortoise ORM format)
    database_url: str = "sqlite://:memory:"

    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        if not 0 <= self.min_burn_pct <= self.max_burn_pct <= 100:
            raise ValueError("burn percentage bounds must satisfy 0 <= min <= max <= 100")
        if not 0 <= self.reserve_share_pct <= 100:
            raise ValueError("reserve_share_pct must be within [0, 100]")
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if self.volume_step_tokens < 1:
            raise ValueError("volume_step_tokens must be at least 1")
        if self.phase_count < 1:
            raise ValueError("phase_count must be at least 1")
        if self.price_observer_errors not in ("propagate", "log"):
            raise ValueError("price_observer_errors must be 'propagate' or 'log'")
        if self.stable_asset_symbol not in self.payment_assets_map:
            raise ValueError("stable_asset_symbol must be one of payment_assets")
        return self

    @property
    def payment_assets_map(self) -> Dict[str, int]:
        return {symbol.upper(): int(decimals) for symbol, decimals in json.loads(self.payment_assets).items()}

    @property
    def cleaned_database_url(self) -> str:
        """Strip problematic query parameters like sslmode from database_url."""
        url = self.database_url
        if "?" in url:
            base, query = url.split("?", 1)
            params = query.split("&")
            # Filter out sslmode and ssl_mode
            filtered_params = [p for p in params if not p.startswith(("sslmode=", "ssl_mode="))]
            if filtered_params:
                return f"{base}?{'&'.join(filtered_params)}"
            return base
        return url

    @property
    def tortoise_config(self) -> dict:
        """Tortoise ORM configuration."""
        return {
            "connections": {
                "default": self.cleaned_database_url,
            },
            "apps": {
                "models": {
                    "models": ["app.models.ledger"],
                    "default_connection": "default",
                },
            },
        }

    # CORS
    cors_origins: str = '["http://localhost:3000","http://localhost:8080"]'

    @property
    def cors_origins_list(self) -> List[str]:
        return json.loads(self.cors_origins)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


settings = Settings()
