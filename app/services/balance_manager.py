import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List
from app.core.config import Settings, get_settings
from app.core.utils import ZERO, is_settled, money, qround, to_decimal
from app.schemas.balances import (
    BalanceDetail,
    BalanceDisplayConfig,
    BalanceDisplayText,
    BalanceSource,
    BalanceSummary,
    FormattedBalances,
    GroupContext,
)
from app.schemas.ledger import (
    ExpenseRecord,
    FriendRecord,
    FriendStatus,
    GroupMemberRecord,
    GroupRecord,
)
from app.services.balance_display import format_balances_for_display, get_balance_display_text
from app.services.balance_repository import BalanceRepository

logger = logging.getLogger(__name__)

BalanceListener = Callable[[BalanceSummary], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pairwise_group_balance(user_id: str, other_id: str, expenses: List[ExpenseRecord]) -> Decimal:
    """
    Net position between two members inside one group.

    Positive: other_id owes user_id. Only unpaid splits count.
    """
    balance = ZERO

    for expense in expenses:
        if expense.paid_by == user_id:
            split = next((s for s in expense.split_data if s.user_id == other_id), None)
            if split and not split.is_paid:
                balance += to_decimal(split.amount)

        if expense.paid_by == other_id:
            split = next((s for s in expense.split_data if s.user_id == user_id), None)
            if split and not split.is_paid:
                balance -= to_decimal(split.amount)

    return qround(balance)


class _GroupLine:
    """Accumulates one counterparty's balance across several groups."""

    def __init__(self, member: GroupMemberRecord):
        self.member = member
        self.balance = ZERO
        self.group_ids: List[str] = []
        self.group_names: List[str] = []
        self.updated_at: datetime | None = None

    def add(self, group: GroupRecord, amount: Decimal):
        self.balance += amount
        self.group_ids.append(group.id)
        self.group_names.append(group.name)
        if group.updated_at and (self.updated_at is None or group.updated_at > self.updated_at):
            self.updated_at = group.updated_at


class BalanceManager:
    """
    Aggregates, caches and broadcasts per-user balances built from
    friend ledgers and shared group expenses.

    One instance is created at app start and shared by injection.
    All state lives on the event loop thread; nothing here is
    safe to call from other threads.
    """

    def __init__(
        self,
        repository: BalanceRepository,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.clock = clock

        self._cache: Dict[str, BalanceSummary] = {}
        self._listeners: Dict[str | None, List[BalanceListener]] = {}

        # coarse process-wide guard, not per user
        self._is_refreshing = False

        self._started_generation: Dict[str, int] = {}
        self._committed_generation: Dict[str, int] = {}

        self._refresh_handles: Dict[str | None, asyncio.TimerHandle] = {}
        self._pending_targets: Dict[str | None, str] = {}
        self._scheduled_tasks = set()

    # ---------------------------------------------------------------
    # listeners
    # ---------------------------------------------------------------

    def add_listener(self, user_id: str | None, callback: BalanceListener) -> Callable[[], None]:
        """
        Subscribe to committed summaries of user_id.
        user_id=None receives the summaries of every user.
        Returns the unsubscribe function.
        """
        self._listeners.setdefault(user_id, []).append(callback)

        def unsubscribe():
            callbacks = self._listeners.get(user_id)
            if not callbacks:
                return
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                del self._listeners[user_id]

        return unsubscribe

    def _notify_listeners(self, user_id: str, summary: BalanceSummary):
        callbacks = list(self._listeners.get(user_id, [])) + list(self._listeners.get(None, []))

        for callback in callbacks:
            try:
                callback(summary)
            except Exception:
                logger.exception("Balance listener failed for user %s", user_id)

    # ---------------------------------------------------------------
    # cache
    # ---------------------------------------------------------------

    def is_cache_valid(self, summary: BalanceSummary) -> bool:
        ttl = timedelta(seconds=self.settings.BALANCE_CACHE_TTL_SECONDS)
        return self.clock() - summary.last_updated < ttl

    def get_cached_balances(self, user_id: str) -> BalanceSummary | None:
        return self._cache.get(user_id)

    def clear_cache(self, user_id: str):
        self._cache.pop(user_id, None)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _empty_summary(self) -> BalanceSummary:
        return BalanceSummary(
            total_owed=0.0,
            total_owing=0.0,
            net_balance=0.0,
            details=[],
            last_updated=self.clock(),
        )

    def _fallback(self, user_id: str) -> BalanceSummary:
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached
        return self._empty_summary()

    # ---------------------------------------------------------------
    # public reads
    # ---------------------------------------------------------------

    async def get_balances(self, user_id: str, force_refresh: bool = False) -> BalanceSummary:
        cached = self._cache.get(user_id)

        if cached is not None and not force_refresh and self.is_cache_valid(cached):
            logger.debug("Balance cache hit for user %s", user_id)
            return cached

        return await self.refresh_balances(user_id)

    async def refresh_balances(self, user_id: str) -> BalanceSummary:
        if self._is_refreshing:
            cached = self._cache.get(user_id)
            if cached is not None:
                logger.debug("Refresh in progress, serving cached balances for user %s", user_id)
                return cached

        self._is_refreshing = True
        generation = self._started_generation.get(user_id, 0) + 1
        self._started_generation[user_id] = generation

        try:
            logger.info("Refreshing balances for user %s", user_id)
            summary = await self._compute_summary(user_id)
        except Exception:
            logger.exception("Failed to refresh balances for user %s", user_id)
            return self._fallback(user_id)
        finally:
            self._is_refreshing = False

        if generation <= self._committed_generation.get(user_id, 0):
            # a refresh started later has already been committed
            logger.debug(
                "Dropping stale balance refresh %s for user %s", generation, user_id
            )
            return self._cache.get(user_id, summary)

        self._committed_generation[user_id] = generation
        self._cache[user_id] = summary
        self._notify_listeners(user_id, summary)

        logger.info(
            "Balances refreshed for user %s | owed=%.2f owing=%.2f net=%.2f details=%d",
            user_id,
            summary.total_owed,
            summary.total_owing,
            summary.net_balance,
            len(summary.details),
        )
        return summary

    # ---------------------------------------------------------------
    # aggregation
    # ---------------------------------------------------------------

    async def _compute_summary(self, user_id: str) -> BalanceSummary:
        raw_friends, raw_groups = await asyncio.gather(
            self.repository.get_friends(user_id),
            self.repository.get_user_groups(user_id),
        )
        friends = [FriendRecord.model_validate(f) for f in raw_friends]
        groups = [GroupRecord.model_validate(g) for g in raw_groups]

        details: List[BalanceDetail] = []
        friend_ids = set()

        for friend in friends:
            if friend.status != FriendStatus.ACCEPTED:
                continue

            try:
                balance = qround(to_decimal(friend.balance))
            except ValueError:
                logger.warning("Skipping friend %s with invalid balance %r", friend.counterparty_id, friend.balance)
                continue

            if is_settled(balance):
                continue

            friend_ids.add(friend.counterparty_id)
            details.append(
                BalanceDetail(
                    counterparty_id=friend.counterparty_id,
                    name=friend.name,
                    email=friend.email,
                    avatar=friend.avatar,
                    balance=money(balance),
                    source=BalanceSource.FRIEND,
                    last_updated=friend.last_activity or friend.created_at,
                )
            )

        logger.debug("Processed %d friend balances for user %s", len(friend_ids), user_id)

        group_lines: Dict[str, _GroupLine] = {}

        for group in groups:
            others = [
                m for m in group.members
                if m.user_id != user_id and m.is_active and m.user_id not in friend_ids
            ]
            if not others:
                continue

            expenses = await self._load_group_expenses(group)

            for member in others:
                try:
                    pairwise = pairwise_group_balance(user_id, member.user_id, expenses)
                except ValueError:
                    logger.warning(
                        "Invalid expense data between %s and %s in group %s",
                        user_id, member.user_id, group.id,
                    )
                    continue

                if is_settled(pairwise):
                    continue

                line = group_lines.get(member.user_id)
                if line is None:
                    line = group_lines[member.user_id] = _GroupLine(member)
                line.add(group, pairwise)

        now = self.clock()

        for counterparty_id, line in group_lines.items():
            balance = qround(line.balance)
            if is_settled(balance):
                continue

            details.append(
                BalanceDetail(
                    counterparty_id=counterparty_id,
                    name=line.member.user_data.full_name,
                    email=line.member.user_data.email,
                    avatar=line.member.user_data.avatar,
                    balance=money(balance),
                    source=BalanceSource.GROUP,
                    group_context=GroupContext(
                        group_id=line.group_ids[0],
                        group_ids=line.group_ids,
                        group_name=", ".join(line.group_names),
                    ),
                    last_updated=line.updated_at or now,
                )
            )

        total_owed = ZERO
        total_owing = ZERO
        for detail in details:
            amount = to_decimal(detail.balance)
            if amount > 0:
                total_owed += amount
            else:
                total_owing += abs(amount)

        total_owed = qround(total_owed)
        total_owing = qround(total_owing)

        return BalanceSummary(
            total_owed=float(total_owed),
            total_owing=float(total_owing),
            net_balance=money(total_owed - total_owing),
            details=details,
            last_updated=now,
        )

    async def _load_group_expenses(self, group: GroupRecord) -> List[ExpenseRecord]:
        try:
            raw = await self.repository.get_group_expenses(group.id)
            return [ExpenseRecord.model_validate(e) for e in raw]
        except Exception:
            logger.exception("Could not load expenses of group %s, counting it as settled", group.id)
            return []

    # ---------------------------------------------------------------
    # debounced refresh
    # ---------------------------------------------------------------

    def _debounce_key(self, user_id: str) -> str | None:
        return user_id if self.settings.BALANCE_DEBOUNCE_PER_USER else None

    def schedule_refresh(self, user_id: str, delay_ms: int | None = None):
        """
        Refresh user_id after delay_ms, replacing whatever refresh is
        still pending in the same slot. Outside a running event loop
        nothing is scheduled and the pending slot is left untouched.
        """
        if delay_ms is None:
            delay_ms = self.settings.BALANCE_REFRESH_DEBOUNCE_MS

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, balance refresh for user %s not scheduled", user_id)
            return

        key = self._debounce_key(user_id)
        pending = self._refresh_handles.pop(key, None)
        if pending is not None:
            pending.cancel()

        self._pending_targets[key] = user_id
        self._refresh_handles[key] = loop.call_later(
            delay_ms / 1000, self._run_scheduled_refresh, key, user_id
        )

    def _run_scheduled_refresh(self, key: str | None, user_id: str):
        self._refresh_handles.pop(key, None)
        self._pending_targets.pop(key, None)

        task = asyncio.ensure_future(self.refresh_balances(user_id))
        self._scheduled_tasks.add(task)
        task.add_done_callback(self._scheduled_tasks.discard)

    def notify_balance_change(self, user_id: str):
        self.schedule_refresh(user_id, self.settings.BALANCE_CHANGE_DEBOUNCE_MS)

    def has_pending_refresh(self, user_id: str | None = None) -> bool:
        if user_id is None:
            return bool(self._pending_targets)
        return user_id in self._pending_targets.values()

    # ---------------------------------------------------------------
    # display
    # ---------------------------------------------------------------

    def format_balances_for_display(
        self,
        summary: BalanceSummary,
        config: BalanceDisplayConfig | None = None,
    ) -> FormattedBalances:
        return format_balances_for_display(summary, config)

    def get_balance_display_text(self, balance: float, currency: str | None = None) -> BalanceDisplayText:
        return get_balance_display_text(balance, currency or self.settings.DEFAULT_CURRENCY)

    def close(self):
        for handle in self._refresh_handles.values():
            handle.cancel()
        self._refresh_handles.clear()
        self._pending_targets.clear()

        for task in list(self._scheduled_tasks):
            task.cancel()
        self._scheduled_tasks.clear()

        self._listeners.clear()
        self._cache.clear()
        self._started_generation.clear()
        self._committed_generation.clear()
