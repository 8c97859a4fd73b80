from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.db.session import init_models
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.models.friendship import Friendship
from app.models.group import Group
from app.models.group_member import GroupMember
from app.models.user import User
from app.schemas.ledger import FriendStatus
from app.services.balance_manager import BalanceManager
from app.services.balance_repository import SqlBalanceRepository


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'balances.db'}")
    await init_models(engine)

    factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as db:
        db.add_all([
            User(id="u", name="Uma", email="u@example.com"),
            User(id="f", name="Finn", email="f@example.com"),
            User(id="m", name="Mia", email="m@example.com", avatar="mia.png"),
            User(id="x", name="Xan", email="x@example.com"),
        ])
        await db.flush()

        db.add_all([
            Friendship(id="fr1", user_id="u", friend_id="f", status="accepted", balance=25.0,
                       created_at=datetime(2026, 1, 1)),
            Friendship(id="fr2", user_id="u", friend_id="x", status="pending", balance=0.0,
                       created_at=datetime(2026, 1, 2)),
            Group(id="g", name="Trip", created_by="u", updated_at=datetime(2026, 2, 1)),
            Group(id="old", name="Old", created_by="u", updated_at=datetime(2025, 1, 1), is_deleted=True),
        ])
        await db.flush()

        db.add_all([
            GroupMember(id="gm1", group_id="g", user_id="u", joined_at=datetime(2026, 1, 1)),
            GroupMember(id="gm2", group_id="g", user_id="m", joined_at=datetime(2026, 1, 2)),
            GroupMember(id="gm3", group_id="g", user_id="x", is_active=False, joined_at=datetime(2026, 1, 3)),
            GroupMember(id="gm4", group_id="old", user_id="u", joined_at=datetime(2025, 1, 1)),
            Expense(id="e1", group_id="g", paid_by="u", title="Fuel", amount=30.0,
                    created_at=datetime(2026, 1, 5)),
            Expense(id="e2", group_id="g", paid_by="m", title="Gone", amount=80.0, is_deleted=True,
                    created_at=datetime(2026, 1, 6)),
        ])
        await db.flush()

        db.add_all([
            ExpenseSplit(id="s1", expense_id="e1", user_id="u", amount=15.0),
            ExpenseSplit(id="s2", expense_id="e1", user_id="m", amount=15.0, is_paid=False),
            ExpenseSplit(id="s3", expense_id="e2", user_id="u", amount=80.0),
        ])
        await db.commit()

    yield factory
    await engine.dispose()


@pytest.mark.asyncio
async def test_get_friends_maps_rows(session_factory):
    repo = SqlBalanceRepository(session_factory)

    friends = await repo.get_friends("u")

    assert [f.counterparty_id for f in friends] == ["f", "x"]
    assert friends[0].status == FriendStatus.ACCEPTED
    assert friends[0].balance == 25.0
    assert friends[0].name == "Finn"
    assert friends[1].status == FriendStatus.PENDING


@pytest.mark.asyncio
async def test_get_user_groups_skips_deleted_groups(session_factory):
    repo = SqlBalanceRepository(session_factory)

    groups = await repo.get_user_groups("u")

    assert [g.id for g in groups] == ["g"]
    members = groups[0].members
    assert [m.user_id for m in members] == ["u", "m", "x"]
    assert members[1].user_data.full_name == "Mia"
    assert members[1].user_data.avatar == "mia.png"
    assert members[2].is_active is False


@pytest.mark.asyncio
async def test_get_user_groups_for_user_without_groups(session_factory):
    repo = SqlBalanceRepository(session_factory)

    assert await repo.get_user_groups("f") == []


@pytest.mark.asyncio
async def test_get_group_expenses_skips_deleted(session_factory):
    repo = SqlBalanceRepository(session_factory)

    expenses = await repo.get_group_expenses("g")

    assert len(expenses) == 1
    assert expenses[0].paid_by == "u"
    assert {(s.user_id, s.amount, s.is_paid) for s in expenses[0].split_data} == {
        ("u", 15.0, False),
        ("m", 15.0, False),
    }


@pytest.mark.asyncio
async def test_manager_over_sql_repository(session_factory):
    manager = BalanceManager(SqlBalanceRepository(session_factory))

    summary = await manager.get_balances("u")

    assert summary.total_owed == 40.0
    assert summary.total_owing == 0.0
    assert {d.counterparty_id for d in summary.details} == {"f", "m"}
    manager.close()
