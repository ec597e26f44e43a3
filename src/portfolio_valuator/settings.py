"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    ALCHEMY_NETWORK_SLUGS,
    ALCHEMY_URL_TEMPLATE,
    DEFAULT_COINGECKO_BASE_URL,
    DEFAULT_RPC_URLS,
    DEFAULT_TOKENS,
    NATIVE_ASSETS,
    NativeAsset,
)

load_dotenv()

SECRET_FIELDS = {"alchemy_api_key", "coingecko_api_key"}
BALANCE_PROVIDERS = {"alchemy", "rpc"}


class Chain(str, Enum):
    MAINNET = "mainnet"
    POLYGON = "polygon"
    BASE = "base"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"

    @property
    def native_asset(self) -> NativeAsset:
        return NATIVE_ASSETS[self.value]


class ValuatorSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with PORTFOLIO_VALUATOR_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- chains / providers ---
    chains: list[Chain] = Field(default_factory=lambda: [Chain.MAINNET])
    balance_provider: str = "alchemy"
    rpc_urls: dict[Chain, str] = Field(default_factory=dict)
    tokens: dict[Chain, list[str]] = Field(default_factory=dict)
    token_allowlist: dict[Chain, list[str]] = Field(default_factory=dict)

    # --- secrets ---
    alchemy_api_key: SecretStr | None = None
    coingecko_api_key: SecretStr | None = None

    # --- pricing ---
    coingecko_base_url: str = DEFAULT_COINGECKO_BASE_URL
    coingecko_ids: dict[str, str] = Field(default_factory=dict)
    price_fallback_enabled: bool = True

    # --- timeouts ---
    chain_timeout_seconds: float = Field(default=30.0, gt=0)
    price_timeout_seconds: float = Field(default=15.0, gt=0)
    global_timeout_seconds: float | None = None

    # --- RPC throttling ---
    max_calls: int = Field(default=5, ge=1)
    rpc_delay: float = Field(default=0.05, ge=0)
    rpc_jitter: float = Field(default=0.05, ge=0)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PORTFOLIO_VALUATOR_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("alchemy_api_key", "coingecko_api_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("balance_provider", mode="before")
    @classmethod
    def normalize_balance_provider(cls, v: Any) -> str:
        name = str(v).lower()
        if name not in BALANCE_PROVIDERS:
            raise ValueError(
                f"Unknown balance provider '{v}'. "
                f"Available: {', '.join(sorted(BALANCE_PROVIDERS))}"
            )
        return name

    @field_validator("coingecko_ids", mode="after")
    @classmethod
    def uppercase_symbol_keys(cls, v: dict[str, str]) -> dict[str, str]:
        return {symbol.upper(): coin_id for symbol, coin_id in v.items()}

    @model_validator(mode="after")
    def validate_chains_not_empty(self) -> "ValuatorSettings":
        if not self.chains:
            raise ValueError("at least one chain must be configured")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("PORTFOLIO_VALUATOR_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    local_config = Path("portfolio-valuator.toml")
                    user_config = (
                        Path.home() / ".config" / "portfolio-valuator" / "config.toml"
                    )
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [portfolio_valuator]
                body = data.get("portfolio_valuator", data)
                if not isinstance(body, dict):
                    return {}

                for key in SECRET_FIELDS:
                    if key in body:
                        raise ValueError(
                            f"Security violation: '{key}' found in TOML config file. "
                            f"Secrets must only be provided via environment variables or CLI flags."
                        )

                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a JSON-ready dict with secrets redacted."""
        data = self.model_dump(mode="json")
        for key in SECRET_FIELDS:
            if getattr(self, key):
                data[key] = "***redacted***"
        return data

    def rpc_url_for(self, chain: Chain) -> str:
        """Resolve the JSON-RPC endpoint used for ``chain``.

        An explicit ``rpc_urls`` entry wins; otherwise the Alchemy endpoint is
        used when the Alchemy provider is selected, else the chain's public RPC.
        """
        if chain in self.rpc_urls:
            return self.rpc_urls[chain]
        if self.balance_provider == "alchemy":
            if self.alchemy_api_key is None:
                raise ValueError("alchemy_api_key must be configured")
            return ALCHEMY_URL_TEMPLATE.format(
                slug=ALCHEMY_NETWORK_SLUGS[chain.value],
                api_key=self.alchemy_api_key.get_secret_value(),
            )
        return DEFAULT_RPC_URLS[chain.value]

    def tokens_for(self, chain: Chain) -> list[str]:
        """Token contracts scanned by the plain RPC adapter on ``chain``."""
        return self.tokens.get(chain) or list(DEFAULT_TOKENS.get(chain.value, []))

    def allowlist_for(self, chain: Chain) -> set[str]:
        """Lower-cased allowed token contracts on ``chain``; empty means all."""
        return {addr.lower() for addr in self.token_allowlist.get(chain, [])}
