from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.services.system_services import check_db_service, system_metrics, system_health
from app.core.dependencies import get_db, get_balance_manager
from app.services.balance_manager import BalanceManager

router = APIRouter()

@router.get("/health/db")
async def check_db():
    return await check_db_service()

@router.get("/metrics")
async def metrics(
    db: AsyncSession = Depends(get_db),
    manager: BalanceManager = Depends(get_balance_manager),
):
    return await system_metrics(db, manager)

@router.get("/health")
async def health():
    return await system_health()
