from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response
from dishka.integrations.fastapi import inject
from dishka import FromComponent
from prometheus_client import CONTENT_TYPE_LATEST
from typing import Annotated

from wallet_exporter.metrics import MetricPublisher
from wallet_exporter.schemas import SnapshotResponse, WalletResponse
from wallet_exporter.usecases import GetWalletUseCase, GetWalletsUseCase, RenderStatusUseCase

router = APIRouter(tags=["Exporter"])

api_router = APIRouter(
    prefix="/api/wallets",
    tags=["Wallets"]
)


@router.get("/metrics")
@inject
async def get_metrics(
    publisher: Annotated[MetricPublisher, FromComponent("wallets")]
) -> Response:
    """
    Prometheus exposition of the current snapshot.

    Parameters
    ----------
    publisher : MetricPublisher
        Metric publisher

    Returns
    -------
    Response
        Metrics in the Prometheus text format
    """
    return Response(content=publisher.render(), media_type=CONTENT_TYPE_LATEST)


@router.get("/status", response_class=PlainTextResponse)
@inject
async def get_status(
    use_case: Annotated[RenderStatusUseCase, FromComponent("wallets")]
) -> PlainTextResponse:
    """
    Human readable dump of the current snapshot.

    Parameters
    ----------
    use_case : RenderStatusUseCase
        Use case rendering the status page

    Returns
    -------
    PlainTextResponse
        Status page
    """
    return PlainTextResponse(await use_case())


@api_router.get("", response_model=SnapshotResponse)
@inject
async def get_wallets(
    use_case: Annotated[GetWalletsUseCase, FromComponent("wallets")]
) -> SnapshotResponse:
    """
    Get every wallet of the current snapshot.

    Parameters
    ----------
    use_case : GetWalletsUseCase
        Use case for the snapshot view

    Returns
    -------
    SnapshotResponse
        Current snapshot
    """
    return await use_case()


@api_router.get("/{address}", response_model=WalletResponse)
@inject
async def get_wallet(
    address: str,
    use_case: Annotated[GetWalletUseCase, FromComponent("wallets")]
) -> WalletResponse:
    """
    Get one wallet of the current snapshot.

    Parameters
    ----------
    address : str
        Wallet address
    use_case : GetWalletUseCase
        Use case for a single wallet

    Returns
    -------
    WalletResponse
        Wallet information
    """
    return await use_case(address=address)
