from fastapi import Depends, HTTPException, status

from procurement_api.middleware.auth import get_current_user

# Staff roles issued at login; SUPPLIER accounts never reach these routes
ADMIN_ROLES = ("ADMIN", "APPROVER")
BUYER_ROLES = ("ADMIN", "BUYER")


def require_roles(*allowed_roles: str):
    """
    Dependency factory that rejects callers whose role is not listed.

        @router.post("/brfqs/{brfq_id}/approve")
        async def approve(_auth: None = Depends(require_roles(*ADMIN_ROLES))):
            ...
    """
    allowed = frozenset(allowed_roles)

    async def check_role(current_user: dict = Depends(get_current_user)) -> None:
        role = current_user.get("role")
        if role in allowed:
            return None
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "INSUFFICIENT_PERMISSIONS",
                "message": f"Role '{role}' may not perform this action "
                f"(allowed: {', '.join(sorted(allowed))})",
            },
        )

    return check_role


def actor_name(current_user: dict) -> str:
    """Name recorded on approval and history rows for the signed-in user."""
    return current_user.get("username") or current_user.get("email") or current_user["user_id"]
