from fastapi import Request
from app.db.session import async_session
from app.services.balance_manager import BalanceManager

async def get_db():
    async with async_session() as session:
        yield session

def get_balance_manager(request: Request) -> BalanceManager:
    return request.app.state.balance_manager
