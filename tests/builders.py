from datetime import datetime, timezone


def friend(counterparty_id, balance, status="accepted", name=None, **extra):
    return {
        "counterparty_id": counterparty_id,
        "status": status,
        "balance": balance,
        "name": name or counterparty_id.upper(),
        "email": f"{counterparty_id}@example.com",
        "created_at": datetime(2025, 12, 1, tzinfo=timezone.utc),
        **extra,
    }


def member(user_id, name=None, is_active=True):
    return {
        "user_id": user_id,
        "user_data": {"full_name": name or user_id.upper(), "email": f"{user_id}@example.com"},
        "is_active": is_active,
    }


def group(group_id, name, member_ids, updated_at=None):
    return {
        "id": group_id,
        "name": name,
        "updated_at": updated_at,
        "members": [member(uid) for uid in member_ids],
    }


def expense(paid_by, splits):
    return {
        "paid_by": paid_by,
        "split_data": [
            {"user_id": uid, "amount": amount, "is_paid": is_paid}
            for uid, amount, is_paid in splits
        ],
    }


