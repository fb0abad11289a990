"""Backend utilities"""
from .clients import ServiceNotConfigured, get_firestore_client, get_supabase_client
from .auth import (
    get_current_user,
    get_portal_user,
    get_admin_user,
    create_portal_token,
    require_admin,
    require_tutee_access,
)

__all__ = [
    "ServiceNotConfigured",
    "get_supabase_client",
    "get_firestore_client",
    "get_current_user",
    "get_portal_user",
    "get_admin_user",
    "create_portal_token",
    "require_admin",
    "require_tutee_access",
]
