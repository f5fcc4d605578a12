from datetime import datetime

from pydantic import BaseModel, ConfigDict

from wallet_exporter.entities import WalletEntity
from wallet_exporter.metrics import to_display_units


class PingResponse(BaseModel):
    """
    Response schema for a provider health probe.

    Attributes
    ----------
    success : bool
        Whether the endpoint answered with a 2xx status
    duration_ms : float
        Latency in milliseconds
    service_url : str
        Probed service URL
    """
    success: bool
    duration_ms: float
    service_url: str

    model_config = ConfigDict(from_attributes=True)


class WalletResponse(BaseModel):
    """
    Response schema for one monitored wallet.

    Provider-only fields are null for other wallet kinds.

    Attributes
    ----------
    address : str
        Checksum address
    name : str
        Display name
    description : str
        Provider description
    type : str
        Wallet kind
    provider_id : int | None
        Registry identifier
    is_active : bool | None
        Registry active flag
    approved : bool | None
        Warm storage approval
    fil_balance_wei : int
        FIL balance in attoFIL
    fil_balance : float
        FIL balance
    usdfc_balance_wei : int
        USDFC balance in base units
    usdfc_balance : float
        USDFC balance
    payment_funds : float
        Payment account funds
    payment_available : float
        Payment account available funds
    payment_locked : float
        Payment account locked funds
    payment_funded_until_epoch : int
        Epoch until which the payment account is funded
    ping : PingResponse | None
        Last provider ping
    """
    address: str
    name: str
    description: str
    type: str
    provider_id: int | None
    is_active: bool | None
    approved: bool | None
    fil_balance_wei: int
    fil_balance: float
    usdfc_balance_wei: int
    usdfc_balance: float
    payment_funds: float
    payment_available: float
    payment_locked: float
    payment_funded_until_epoch: int
    ping: PingResponse | None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, wallet: WalletEntity) -> "WalletResponse":
        return cls(
            address=wallet.address,
            name=wallet.name,
            description=wallet.description,
            type=wallet.kind.value,
            provider_id=wallet.provider_id,
            is_active=wallet.is_active,
            approved=wallet.is_approved,
            fil_balance_wei=wallet.native_balance,
            fil_balance=to_display_units(wallet.native_balance),
            usdfc_balance_wei=wallet.token_balance,
            usdfc_balance=to_display_units(wallet.token_balance),
            payment_funds=to_display_units(wallet.payment_funds),
            payment_available=to_display_units(wallet.payment_available),
            payment_locked=to_display_units(wallet.payment_locked),
            payment_funded_until_epoch=wallet.payment_funded_until_epoch,
            ping=PingResponse.model_validate(wallet.ping_result) if wallet.ping_result else None
        )


class SnapshotResponse(BaseModel):
    """
    Response schema for the current snapshot.

    Attributes
    ----------
    network : str
        Network name
    last_scrape : datetime | None
        Completion time of the snapshot, null before the first scrape
    total_wallets : int
        Number of wallets
    wallets : list[WalletResponse]
        Wallets in snapshot order
    """
    network: str
    last_scrape: datetime | None
    total_wallets: int
    wallets: list[WalletResponse]

    model_config = ConfigDict(from_attributes=True)
