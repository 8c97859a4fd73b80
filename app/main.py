from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.api.v1.routes.system import router as system_router
from app.api.v1.routes.balances import router as balances_router
from app.core.config import settings
from app.core.db_check import wait_for_db
from app.core.logging import configure_logging
from app.db.session import async_session, init_models
from app.services.balance_manager import BalanceManager
from app.services.balance_repository import SqlBalanceRepository


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    await wait_for_db()
    await init_models()

    app.state.balance_manager = BalanceManager(SqlBalanceRepository(async_session), settings)
    yield
    app.state.balance_manager.close()

app = FastAPI(title="Splito Balances", lifespan=lifespan)

@app.get("/")
async def root():
    return {"message": "Splito balances service is live"}

app.include_router(system_router, prefix="/api/v1/system")
app.include_router(balances_router, prefix="/api/v1/balances")
