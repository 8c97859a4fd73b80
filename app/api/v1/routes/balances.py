from typing import Literal
from fastapi import APIRouter, Depends, Query
from app.core.dependencies import get_balance_manager
from app.schemas.balances import (
    BalanceDisplayConfig,
    BalanceDisplayText,
    BalanceSummary,
    FormattedBalances,
)
from app.services.balance_manager import BalanceManager

router = APIRouter()

# must be registered before /{user_id}
@router.get("/display-text", response_model=BalanceDisplayText)
async def display_text(
    balance: float,
    currency: str | None = None,
    manager: BalanceManager = Depends(get_balance_manager),
):
    return manager.get_balance_display_text(balance, currency)

@router.get("/{user_id}", response_model=BalanceSummary)
async def get_balances(
    user_id: str,
    force_refresh: bool = False,
    manager: BalanceManager = Depends(get_balance_manager),
):
    return await manager.get_balances(user_id, force_refresh=force_refresh)

@router.post("/{user_id}/refresh", response_model=BalanceSummary)
async def refresh_balances(user_id: str, manager: BalanceManager = Depends(get_balance_manager)):
    return await manager.refresh_balances(user_id)

@router.post("/{user_id}/notify", status_code=202)
async def notify_balance_change(user_id: str, manager: BalanceManager = Depends(get_balance_manager)):
    manager.notify_balance_change(user_id)
    return {"status": "scheduled"}

@router.delete("/{user_id}/cache")
async def clear_cache(user_id: str, manager: BalanceManager = Depends(get_balance_manager)):
    manager.clear_cache(user_id)
    return {"status": "cleared"}

@router.get("/{user_id}/display", response_model=FormattedBalances)
async def display_balances(
    user_id: str,
    sort_by: Literal["amount", "name", "date"] = "amount",
    sort_order: Literal["asc", "desc"] = "desc",
    show_zero_balances: bool = False,
    group_separately: bool = Query(False),
    manager: BalanceManager = Depends(get_balance_manager),
):
    summary = await manager.get_balances(user_id)
    config = BalanceDisplayConfig(
        sort_by=sort_by,
        sort_order=sort_order,
        show_zero_balances=show_zero_balances,
        group_separately=group_separately,
    )
    return manager.format_balances_for_display(summary, config)
