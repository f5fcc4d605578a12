from dataclasses import dataclass, field as dataclass_field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from core.exceptions import EntityFetchException


class WalletKind(str, Enum):
    """Kind of a monitored wallet."""
    PROVIDER = "provider"
    CLIENT = "client"
    OPERATOR = "operator"
    OTHER = "other"


class ProviderInfoEntity(BaseModel):
    """
    Entity representing a storage provider registry entry.

    Attributes
    ----------
    provider_id : int
        Registry identifier (starts at 1)
    service_provider : str
        Provider wallet address
    payee : str
        Address receiving payments
    name : str
        Display name
    description : str
        Free form description
    is_active : bool
        Whether the provider is active in the registry
    """
    provider_id: int
    service_provider: str
    payee: str
    name: str
    description: str
    is_active: bool

    model_config = ConfigDict(frozen=True)


class ProviderProductEntity(BaseModel):
    """
    Entity representing a provider's registered PDP product.

    Attributes
    ----------
    provider_id : int
        Registry identifier
    is_active : bool
        Product active flag
    provider_is_active : bool
        Registry active flag of the owning provider
    capabilities : tuple[tuple[str, str], ...]
        Capability key/value pairs in registry order
    """
    provider_id: int
    is_active: bool
    provider_is_active: bool = True
    capabilities: tuple[tuple[str, str], ...] = ()

    model_config = ConfigDict(frozen=True)

    def capability(self, key: str) -> str | None:
        """
        Look up a capability value, first match in registry order wins.

        Parameters
        ----------
        key : str
            Exact capability key

        Returns
        -------
        str | None
            Capability value or None if missing or empty
        """
        for name, value in self.capabilities:
            if name == key:
                return value or None
        return None


class PaymentAccountEntity(BaseModel):
    """
    Entity representing an escrow account in the payments contract.

    Attributes
    ----------
    funds : int
        Total deposited funds in base units
    available : int
        Funds not locked up, in base units
    funded_until_epoch : int
        Epoch at which the account runs out of funds at the current lockup rate
    """
    funds: int = 0
    available: int = 0
    funded_until_epoch: int = 0

    model_config = ConfigDict(frozen=True)


class PingResultEntity(BaseModel):
    """
    Outcome of one provider health probe.

    Attributes
    ----------
    success : bool
        True if the endpoint answered with a 2xx status
    duration_ms : float
        Measured latency in milliseconds
    service_url : str
        Probed service URL
    """
    success: bool
    duration_ms: float
    service_url: str

    model_config = ConfigDict(frozen=True)


class WalletEntity(BaseModel):
    """
    Entity representing one monitored wallet and its observed state.

    Provider-only attributes (``provider_id``, ``is_active``, ``is_approved``,
    ``ping_result``) are ``None`` for every other kind.

    Attributes
    ----------
    address : str
        Checksum wallet address
    name : str
        Display name
    description : str
        Description (providers only, empty otherwise)
    kind : WalletKind
        Wallet kind
    provider_id : int | None
        Registry identifier for providers
    is_active : bool | None
        Registry active flag for providers
    is_approved : bool | None
        Warm storage approval for providers
    native_balance : int
        FIL balance in attoFIL
    token_balance : int
        USDFC balance in base units
    payment_funds : int
        Payment account funds in base units
    payment_available : int
        Payment account available funds in base units
    payment_funded_until_epoch : int
        Epoch until which the payment account is funded
    ping_result : PingResultEntity | None
        Latest health probe for providers with a discoverable endpoint
    """
    address: str
    name: str = ""
    description: str = ""
    kind: WalletKind
    provider_id: int | None = None
    is_active: bool | None = None
    is_approved: bool | None = None
    native_balance: int = Field(default=0, ge=0)
    token_balance: int = Field(default=0, ge=0)
    payment_funds: int = 0
    payment_available: int = 0
    payment_funded_until_epoch: int = 0
    ping_result: PingResultEntity | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_provider_fields(self) -> "WalletEntity":
        if self.kind is WalletKind.PROVIDER:
            if not self.provider_id or self.provider_id <= 0:
                raise ValueError("provider wallets require a positive provider_id")
            if self.is_active is None or self.is_approved is None:
                raise ValueError("provider wallets require is_active and is_approved")
        elif any(v is not None for v in (self.provider_id, self.is_active, self.is_approved, self.ping_result)):
            raise ValueError(f"{self.kind.value} wallets cannot carry provider fields")
        return self

    @computed_field
    @property
    def payment_locked(self) -> int:
        return max(0, self.payment_funds - self.payment_available)

    @property
    def is_provider(self) -> bool:
        return self.kind is WalletKind.PROVIDER


class SnapshotEntity(BaseModel):
    """
    One complete collection cycle result.

    Attributes
    ----------
    wallets : tuple[WalletEntity, ...]
        Providers by ascending ID followed by custom wallets in configuration order
    captured_at : datetime | None
        Completion time of the cycle, None before the first cycle
    """
    wallets: tuple[WalletEntity, ...] = ()
    captured_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    def by_kind(self, *kinds: WalletKind) -> list[WalletEntity]:
        return [wallet for wallet in self.wallets if wallet.kind in kinds]

    def find(self, address: str) -> WalletEntity | None:
        address = address.lower()
        for wallet in self.wallets:
            if wallet.address.lower() == address:
                return wallet
        return None


@dataclass
class ScrapeReport:
    """
    Bookkeeping of one collection cycle, owned by the collecting task.

    Attributes
    ----------
    entity_errors : list[EntityFetchException]
        Entities dropped from the snapshot
    field_errors : int
        Secondary lookups that degraded to a default
    provider_count : int
        Providers enumerated from the registry
    duration_seconds : float
        Wall time of the cycle
    """
    entity_errors: list[EntityFetchException] = dataclass_field(default_factory=list)
    field_errors: int = 0
    provider_count: int = 0
    duration_seconds: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.entity_errors) or self.field_errors > 0
