from datetime import datetime
from enum import Enum
from typing import List, Literal
from pydantic import BaseModel

class BalanceSource(str, Enum):
    FRIEND = "friend"
    GROUP = "group"

class GroupContext(BaseModel):
    group_id: str
    group_ids: List[str]
    group_name: str

class BalanceDetail(BaseModel):
    counterparty_id: str
    name: str
    email: str | None = None
    avatar: str | None = None
    # positive: they owe the user, negative: the user owes them
    balance: float
    source: BalanceSource
    group_context: GroupContext | None = None
    last_updated: datetime

class BalanceSummary(BaseModel):
    total_owed: float
    total_owing: float
    net_balance: float
    details: List[BalanceDetail] = []
    last_updated: datetime

    @property
    def is_empty(self) -> bool:
        return not self.details

    @property
    def has_positive_balance(self) -> bool:
        return self.total_owed > 0

    @property
    def has_negative_balance(self) -> bool:
        return self.total_owing > 0

    @property
    def friend_balances(self) -> List[BalanceDetail]:
        return [d for d in self.details if d.source == BalanceSource.FRIEND]

    @property
    def group_member_balances(self) -> List[BalanceDetail]:
        return [d for d in self.details if d.source == BalanceSource.GROUP]

class BalanceDisplayConfig(BaseModel):
    show_zero_balances: bool = False
    sort_by: Literal["amount", "name", "date"] = "amount"
    sort_order: Literal["asc", "desc"] = "desc"
    group_separately: bool = False

class FormattedBalances(BaseModel):
    friends: List[BalanceDetail]
    group_members: List[BalanceDetail]
    combined: List[BalanceDetail]

class BalanceDisplayText(BaseModel):
    text: str
    color: Literal["positive", "negative", "neutral"]
    symbol: str
