import logging
from typing import List
from app.core.config import settings
from app.core.currency import format_money
from app.core.utils import DEAD_ZONE, ZERO, is_settled, to_decimal
from app.schemas.balances import (
    BalanceDetail,
    BalanceDisplayConfig,
    BalanceDisplayText,
    BalanceSource,
    BalanceSummary,
    FormattedBalances,
)

logger = logging.getLogger(__name__)


def _sort_details(details: List[BalanceDetail], config: BalanceDisplayConfig) -> List[BalanceDetail]:
    """
    "desc" is the natural reading order of each key:
    biggest amount first, names A to Z, newest first.
    "asc" flips it.
    """
    if config.sort_by == "amount":
        key = lambda d: abs(d.balance)
        natural_reverse = True
    elif config.sort_by == "name":
        key = lambda d: d.name.casefold()
        natural_reverse = False
    else:
        key = lambda d: d.last_updated.timestamp()
        natural_reverse = True

    reverse = natural_reverse if config.sort_order == "desc" else not natural_reverse
    return sorted(details, key=key, reverse=reverse)


def format_balances_for_display(
    summary: BalanceSummary,
    config: BalanceDisplayConfig | None = None,
) -> FormattedBalances:
    config = config or BalanceDisplayConfig()

    details = list(summary.details)

    if not config.show_zero_balances:
        details = [d for d in details if not is_settled(to_decimal(d.balance))]

    details = _sort_details(details, config)

    if config.group_separately:
        return FormattedBalances(
            friends=[d for d in details if d.source == BalanceSource.FRIEND],
            group_members=[d for d in details if d.source == BalanceSource.GROUP],
            combined=details,
        )

    return FormattedBalances(friends=[], group_members=[], combined=details)


def get_balance_display_text(balance: float, currency: str | None = None) -> BalanceDisplayText:
    currency = currency or settings.DEFAULT_CURRENCY
    try:
        amount = to_decimal(balance)
    except ValueError:
        logger.warning("Cannot display balance %r, showing it as settled", balance)
        amount = ZERO

    if abs(amount) < DEAD_ZONE:
        return BalanceDisplayText(text="Settled up", color="neutral", symbol="✓")

    if amount > 0:
        return BalanceDisplayText(
            text=f"Owes you {format_money(amount, currency)}",
            color="positive",
            symbol="+",
        )

    return BalanceDisplayText(
        text=f"You owe {format_money(amount, currency)}",
        color="negative",
        symbol="-",
    )
