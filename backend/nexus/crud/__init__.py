"""CRUD 操作模块"""
from .points import (
    credit_points,
    debit_points,
    get_balance,
    get_user_points,
    leaderboard,
    list_transactions,
)
from .user import (
    authenticate,
    grant_role,
    has_role,
    list_roles,
    revoke_role,
    update_subscription,
)
from .user import (
    create as create_user,
)
from .user import (
    get_by_username as get_user_by_username,
)

__all__ = [
    "credit_points",
    "debit_points",
    "get_balance",
    "get_user_points",
    "leaderboard",
    "list_transactions",
    "authenticate",
    "create_user",
    "get_user_by_username",
    "grant_role",
    "has_role",
    "list_roles",
    "revoke_role",
    "update_subscription",
]
