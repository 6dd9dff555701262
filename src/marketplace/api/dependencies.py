"""Request-scoped dependencies: the running Marketplace and the caller's identity.

Authentication happens upstream; the gateway forwards the authenticated
user id in ``X-User-Id`` and the role in ``X-User-Role``.
"""

from fastapi import Depends, Header, HTTPException, Request

from marketplace.services import Marketplace

ADMIN_ROLE = "admin"
MERCHANT_ROLE = "merchant"


def get_marketplace(request: Request) -> Marketplace:
    return request.app.state.marketplace


def current_user(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authorized to access this route")
    return x_user_id


def _role(x_user_role: str | None) -> str:
    return (x_user_role or "").lower()


def current_admin(
    user_id: str = Depends(current_user),
    x_user_role: str | None = Header(default=None),
) -> str:
    if _role(x_user_role) != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user_id


def current_merchant(
    user_id: str = Depends(current_user),
    x_user_role: str | None = Header(default=None),
) -> str:
    """The caller's id, acting as a merchant (admins may too)."""
    if _role(x_user_role) not in (MERCHANT_ROLE, ADMIN_ROLE):
        raise HTTPException(status_code=403, detail="Merchant access required")
    return user_id
