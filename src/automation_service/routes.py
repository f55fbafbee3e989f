"""HTTP routes for automation control, advisory recommendations and read-only operator lookups"""

from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, HTTPException, Query, Request

from chain_connector_base import (
    AutomationNotRunningError,
    ChainConnectionError,
    MalformedRecommendationError,
    QuoteUnavailableError,
    TokenBalance,
    WalletServiceError,
)
from evm_connector import position_asset
from .models import ConfigureRequest, ControlResponse, RecommendationRequest, StatusResponse
from .services.advisor_service import AdvisorOrchestrator
from .services.automation_service import AutomationService

automation_router = APIRouter(prefix="/automation", tags=["automation"])
advisor_router = APIRouter(prefix="/ai-currency", tags=["ai-currency"])
trades_router = APIRouter(prefix="/trades", tags=["trades"])
wallets_router = APIRouter(prefix="/wallets", tags=["wallets"])


def _automation(request: Request) -> AutomationService:
    return request.app.state.container.automation_service()


def _advisor(request: Request) -> AdvisorOrchestrator:
    return request.app.state.container.advisor()


@automation_router.post("/start", response_model=ControlResponse)
async def start_automation(request: Request):
    return _automation(request).start()


@automation_router.post("/stop", response_model=ControlResponse)
async def stop_automation(request: Request):
    return _automation(request).stop()


@automation_router.get("/status", response_model=StatusResponse)
async def automation_status(request: Request):
    return _automation(request).status()


@automation_router.post("/recommendation")
async def process_recommendation(request: Request, body: Optional[RecommendationRequest] = None):
    """Evaluate a recommendation for one wallet and execute any resulting trades"""
    if body is None or not body.recommendation or not body.walletId:
        raise HTTPException(status_code=400, detail="Missing required parameters: recommendation and walletId")

    try:
        result = await _automation(request).process_recommendation(
            body.recommendation,
            body.walletId,
            force_rebalance=body.forceRebalance
        )
    except AutomationNotRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MalformedRecommendationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid recommendation: {e}")

    return result.model_dump(mode="json", by_alias=True)


@automation_router.post("/configure")
async def configure_automation(request: Request, body: Optional[ConfigureRequest] = None):
    threshold = body.rebalanceThreshold if body is not None else None
    try:
        return _automation(request).configure(threshold)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@advisor_router.get("")
async def get_recommendation(request: Request):
    """Combined EUR/USD recommendation from all advisory sources"""
    return await _advisor(request).recommend()


@advisor_router.get("/health")
async def advisor_health(request: Request):
    health = await _advisor(request).health()
    return {
        'status': 'success',
        'data': {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'sources': health,
        }
    }


@advisor_router.get("/servers")
async def advisor_servers(request: Request):
    sources = _advisor(request).get_available_sources()
    return {
        'status': 'success',
        'data': {
            'availableServers': sources,
            'totalServers': len(sources),
        }
    }


@trades_router.get("/quotes")
async def get_quotes(
    request: Request,
    src_token: str = Query(alias="srcToken"),
    dst_token: str = Query(alias="dstToken"),
    src_chain_key: str = Query(alias="srcChainKey"),
    dst_chain_key: str = Query(alias="dstChainKey"),
    src_amount: int = Query(alias="srcAmount", gt=0),
    src_address: str = Query(alias="srcAddress"),
    dst_address: str = Query(alias="dstAddress"),
):
    """Quotes for a transfer, as the executor would see them; nothing is submitted"""
    try:
        quotes = await request.app.state.container.quote_client().get_quotes(
            src_token=src_token,
            dst_token=dst_token,
            src_chain_key=src_chain_key,
            dst_chain_key=dst_chain_key,
            src_amount=src_amount,
            src_address=src_address,
            dst_address=dst_address
        )
    except QuoteUnavailableError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {
        'status': 'success',
        'data': [quote.model_dump(mode="json") for quote in quotes]
    }


@trades_router.get("/status/{tx_hash}")
async def get_transaction_status(request: Request, tx_hash: str, chain: str = Query()):
    container = request.app.state.container
    if chain not in container.config().chains:
        raise HTTPException(status_code=400, detail=f"Unknown chain '{chain}'")

    try:
        status = await container.chain_client().get_transaction_status(chain, tx_hash)
    except ChainConnectionError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {'status': 'success', 'data': status}


@wallets_router.get("/{wallet_id}/balance")
async def get_wallet_balance(request: Request, wallet_id: str):
    """Idle and supplied balances of every portfolio asset, in smallest units"""
    container = request.app.state.container
    reader = container.balance_reader()

    try:
        wallet = await container.wallet_client().get_wallet(wallet_id)
        balances = []
        for asset in container.config().portfolio.assets:
            holdings = [asset] if asset.lending is None else [asset, position_asset(asset)]
            for holding in holdings:
                amount = await reader.get_token_balance(wallet, holding)
                balances.append(TokenBalance(symbol=holding.symbol, chain=holding.chain, amount=amount))
    except (WalletServiceError, ChainConnectionError) as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {
        'status': 'success',
        'data': {
            'walletId': wallet.id,
            'address': wallet.address,
            'balances': [b.model_dump() for b in balances],
        }
    }
