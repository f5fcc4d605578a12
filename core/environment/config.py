import logging
import os
import re
from datetime import timedelta
from typing import Annotated, Literal

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
DURATION_PATTERN = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
METRICS_PREFIX_PATTERN = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")

# Official Filecoin Synapse deployments
DEFAULT_RPC_URLS = {
    "calibration": "https://api.calibration.node.glif.io/rpc/v1",
    "mainnet": "https://api.node.glif.io/rpc/v1",
}
DEFAULT_WARM_STORAGE_ADDRESSES = {
    "calibration": "0x02925630df557F957f70E112bA06e50965417CA0",
    "mainnet": "0x8408502033C418E1bbC97cE9ac48E5528F371A9f",
}
DEFAULT_USDFC_ADDRESSES = {
    "calibration": "0xb3042734b608a1B16e9e86B374A3f3e389B4cDf0",
    "mainnet": "0x80B98d3aa09ffff255c3ba4A241111Ff1262F045",
}
DEFAULT_PAYMENTS_ADDRESSES = {
    "calibration": "0x09a0fDc2723fAd1A7b8e3e00eE5DF73841df55a0",
    "mainnet": "0x23b1e018F08BB982348b15a86ee926eEBf7F4DAa",
}

MAX_NUMBERED_WALLETS = 1000
NUMBERED_WALLET_PREFIX = "CUSTOM_WALLET_"

_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: str) -> timedelta:
    """
    Parse a Go-style duration (``90s``, ``1m30s``, ``500ms``) or plain seconds.

    Parameters
    ----------
    value : str
        Duration string

    Returns
    -------
    timedelta
        Parsed duration

    Raises
    ------
    ValueError
        If the string is not a valid duration
    """
    text = value.strip().lower()
    try:
        return timedelta(seconds=float(text))
    except (ValueError, OverflowError):
        pass

    matches = list(DURATION_PATTERN.finditer(text))
    if not matches or "".join(m.group(0) for m in matches) != text:
        raise ValueError(f"invalid duration {value!r}, expected e.g. '60s', '1m30s' or '500ms'")

    seconds = sum(float(m.group(1)) * _DURATION_UNITS[m.group(2)] for m in matches)
    return timedelta(seconds=seconds)


def validate_address(value: str) -> str:
    if not ADDRESS_PATTERN.match(value):
        raise ValueError(f"invalid address {value!r}, expected 0x followed by 40 hex characters")
    return value


class CustomWallet(BaseModel):
    """
    Statically configured wallet that is not derived from the registry.

    Attributes
    ----------
    address : str
        Wallet address
    name : str
        Display name
    type : Literal["client", "operator", "other"]
        Wallet kind tag
    """
    address: str
    name: str
    type: Literal["client", "operator", "other"] = "other"

    model_config = ConfigDict(frozen=True)

    @field_validator("address")
    @classmethod
    def check_address(cls, v: str) -> str:
        return validate_address(v)

    @classmethod
    def parse(cls, entry: str) -> "CustomWallet":
        """
        Parse one ``address:name[:type]`` entry.

        Parameters
        ----------
        entry : str
            Raw configuration entry

        Returns
        -------
        CustomWallet
            Parsed wallet
        """
        parts = [part.strip() for part in entry.strip().split(":")]
        if len(parts) < 2 or not parts[0]:
            raise ValueError(f"invalid custom wallet entry {entry!r}, expected 'address:name[:type]'")

        wallet_type = parts[2].lower() if len(parts) >= 3 and parts[2] else "other"
        return cls(address=parts[0], name=parts[1], type=wallet_type)


class Settings(BaseSettings):
    """
    Exporter settings using Pydantic Settings.

    Attributes
    ----------
    network : Literal["calibration", "mainnet"]
        Filecoin network, selects default RPC URL and contract addresses
    rpc_url : str
        JSON-RPC endpoint
    warm_storage_address : str
        Warm storage service contract, used to resolve registry and view contracts
    usdfc_token_address : str
        USDFC ERC-20 token contract
    payments_address : str
        Filecoin Pay contract (optional, payment metrics are zero without it)
    custom_wallets : list[CustomWallet]
        Wallets from ``CUSTOM_WALLETS`` followed by ``CUSTOM_WALLET_1..N``
    exporter_host : str
        HTTP bind host
    exporter_port : int
        HTTP port
    scrape_interval : timedelta
        Time between the starts of two collection cycles
    metrics_prefix : str
        Prefix of every exported metric name
    log_level : str
        Log verbosity
    max_concurrent_requests : int
        Ceiling on in-flight remote calls per collection cycle
    """

    network: Literal["calibration", "mainnet"] = "calibration"
    rpc_url: str = ""
    warm_storage_address: str = ""
    usdfc_token_address: str = ""
    payments_address: str = ""

    custom_wallets: Annotated[list[CustomWallet], NoDecode] = Field(default_factory=list)

    exporter_host: str = "0.0.0.0"
    exporter_port: int = Field(default=9091, ge=1, le=65535)
    scrape_interval: timedelta = timedelta(seconds=60)
    metrics_prefix: str = "dealbot"
    log_level: Literal["debug", "info", "warn", "warning", "error"] = "info"
    max_concurrent_requests: int = Field(default=10, ge=1, le=1000)

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("network", "log_level", mode="before")
    @classmethod
    def normalize_choice(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("custom_wallets", mode="before")
    @classmethod
    def parse_custom_wallets(cls, v):
        if isinstance(v, str):
            return [CustomWallet.parse(entry) for entry in v.split(",") if entry.strip()]
        return v

    @field_validator("scrape_interval", mode="before")
    @classmethod
    def parse_scrape_interval(cls, v):
        if isinstance(v, str):
            return parse_duration(v)
        return v

    @field_validator("scrape_interval")
    @classmethod
    def check_scrape_interval(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("SCRAPE_INTERVAL must be positive")
        return v

    @field_validator("metrics_prefix")
    @classmethod
    def check_metrics_prefix(cls, v: str) -> str:
        if not METRICS_PREFIX_PATTERN.match(v):
            raise ValueError(f"invalid METRICS_PREFIX {v!r}")
        return v

    @field_validator("rpc_url")
    @classmethod
    def check_rpc_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"invalid RPC_URL {v!r}, expected an http(s) URL")
        return v

    @model_validator(mode="after")
    def apply_network_defaults(self) -> "Settings":
        self.rpc_url = self.rpc_url or DEFAULT_RPC_URLS[self.network]
        self.warm_storage_address = self.warm_storage_address or DEFAULT_WARM_STORAGE_ADDRESSES[self.network]
        self.usdfc_token_address = self.usdfc_token_address or DEFAULT_USDFC_ADDRESSES[self.network]
        self.payments_address = self.payments_address or DEFAULT_PAYMENTS_ADDRESSES[self.network]

        validate_address(self.warm_storage_address)
        validate_address(self.usdfc_token_address)
        if self.payments_address:
            validate_address(self.payments_address)

        self.custom_wallets = self.custom_wallets + self._numbered_wallets()
        return self

    def _numbered_wallets(self) -> list[CustomWallet]:
        """
        Collect ``CUSTOM_WALLET_N`` entries from the dotenv file and the environment.

        Returns
        -------
        list[CustomWallet]
            Wallets in numeric order, process environment overriding the dotenv file
        """
        values: dict[str, str] = {}
        env_file = self.model_config.get("env_file")
        if env_file and os.path.isfile(env_file):
            values.update({k.upper(): v for k, v in dotenv_values(env_file).items() if v})
        values.update({k.upper(): v for k, v in os.environ.items() if k.upper().startswith(NUMBERED_WALLET_PREFIX)})

        wallets = []
        for i in range(1, MAX_NUMBERED_WALLETS + 1):
            entry = values.get(f"{NUMBERED_WALLET_PREFIX}{i}", "").strip()
            if entry:
                wallets.append(CustomWallet.parse(entry))
        return wallets

    @property
    def log_level_number(self) -> int:
        """
        Stdlib logging level for ``log_level``.

        Returns
        -------
        int
            Logging level
        """
        return {
            "debug": logging.DEBUG,
            "warn": logging.WARNING,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }.get(self.log_level, logging.INFO)
