from typing import List, Protocol
from sqlalchemy import select
from app.models.user import User
from app.models.friendship import Friendship
from app.models.group import Group
from app.models.group_member import GroupMember
from app.models.expense import Expense
from app.schemas.ledger import (
    ExpenseRecord,
    FriendRecord,
    GroupMemberRecord,
    GroupRecord,
    MemberProfile,
    SplitEntry,
)


class BalanceRepository(Protocol):
    """
    Read-side data access used by the balance manager.

    Implementations may return the record models or plain mappings
    with the same fields.
    """

    async def get_friends(self, user_id: str) -> List[FriendRecord]: ...

    async def get_user_groups(self, user_id: str) -> List[GroupRecord]: ...

    async def get_group_expenses(self, group_id: str) -> List[ExpenseRecord]: ...


class SqlBalanceRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def get_friends(self, user_id: str) -> List[FriendRecord]:
        q = (
            select(Friendship, User)
            .join(User, User.id == Friendship.friend_id)
            .where(Friendship.user_id == user_id)
            .order_by(Friendship.created_at, Friendship.id)
        )

        async with self.session_factory() as db:
            rows = (await db.execute(q)).all()

        return [
            FriendRecord(
                counterparty_id=friend.id,
                status=friendship.status,
                balance=friendship.balance,
                name=friend.name,
                email=friend.email,
                avatar=friend.avatar,
                last_activity=friendship.last_activity,
                created_at=friendship.created_at,
            )
            for friendship, friend in rows
        ]

    async def get_user_groups(self, user_id: str) -> List[GroupRecord]:
        q_groups = (
            select(Group)
            .join(GroupMember, GroupMember.group_id == Group.id)
            .where(
                GroupMember.user_id == user_id,
                Group.is_deleted == False,
            )
            .order_by(Group.updated_at.desc(), Group.id)
        )

        async with self.session_factory() as db:
            groups = (await db.scalars(q_groups)).all()

            if not groups:
                return []

            q_members = (
                select(GroupMember, User)
                .join(User, User.id == GroupMember.user_id)
                .where(GroupMember.group_id.in_([g.id for g in groups]))
                .order_by(GroupMember.joined_at, GroupMember.id)
            )
            member_rows = (await db.execute(q_members)).all()

        members_by_group = {}
        for member, user in member_rows:
            members_by_group.setdefault(member.group_id, []).append(
                GroupMemberRecord(
                    user_id=user.id,
                    user_data=MemberProfile(
                        full_name=user.name,
                        email=user.email,
                        avatar=user.avatar,
                    ),
                    is_active=member.is_active,
                )
            )

        return [
            GroupRecord(
                id=group.id,
                name=group.name,
                updated_at=group.updated_at,
                members=members_by_group.get(group.id, []),
            )
            for group in groups
        ]

    async def get_group_expenses(self, group_id: str) -> List[ExpenseRecord]:
        q = (
            select(Expense)
            .where(Expense.group_id == group_id, Expense.is_deleted == False)
            .order_by(Expense.created_at, Expense.id)
        )

        async with self.session_factory() as db:
            expenses = (await db.scalars(q)).all()

        return [
            ExpenseRecord(
                paid_by=expense.paid_by,
                split_data=[SplitEntry.model_validate(s) for s in expense.splits],
            )
            for expense in expenses
        ]
