from typing import Dict

from fastapi import Depends, HTTPException, status

from school_ledger.auth.dependencies import get_current_user
from school_ledger.auth.schemas import CurrentUser

FULL_ACCESS_ROLES = ("SUPER_ADMIN", "ADMIN")


def check_permission(module: str, action: str):
    """
    Dependency factory to enforce a specific permission.

    Example:
        Depends(check_permission("fees", "create"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if current_user.role in FULL_ACCESS_ROLES:
            return
        permissions: Dict[str, Dict[str, bool]] = current_user.permissions or {}
        module_perms = permissions.get(module, {})
        if not module_perms.get(action, False):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    return _checker
