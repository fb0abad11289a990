"""
Hosted service clients

- Supabase (service role) for the tutoring tables
- Firebase Admin for ID-token checks and the Firestore progress documents

Each client is created once per process from environment variables.
Missing configuration raises ServiceNotConfigured, which the API reports
as 503 rather than a request error.
"""
import os
from typing import List, Optional

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import credentials, firestore
from supabase import Client, create_client

from .logger import get_logger

load_dotenv()
load_dotenv('../.env')

logger = get_logger("backend.lib.clients")

_supabase_client: Optional[Client] = None
_firestore_client = None


class ServiceNotConfigured(RuntimeError):
    """A hosted service is missing the settings it needs."""

    def __init__(self, service: str, missing: List[str]):
        self.service = service
        self.missing = missing
        super().__init__(f"{service} is not configured (missing: {', '.join(missing)})")


def _require_env(service: str, *names: str) -> List[str]:
    values = [os.getenv(name) for name in names]
    missing = [name for name, value in zip(names, values) if not value]
    if missing:
        logger.error(f"{service} client unavailable", data={"missing": missing})
        raise ServiceNotConfigured(service, missing)
    return values


# ==================== Supabase ====================

def get_supabase_client() -> Client:
    """Service-role client; tutee access is enforced by the API, not by RLS."""
    global _supabase_client

    if _supabase_client is None:
        url, key = _require_env("Supabase", "SUPABASE_URL", "SUPABASE_SERVICE_KEY")
        _supabase_client = create_client(url, key)
        logger.success("Supabase client ready", data={"url": url})

    return _supabase_client


# ==================== Firebase ====================

def get_firebase_app() -> firebase_admin.App:
    """
    The default Firebase app, initialised on first use.

    FIREBASE_CREDENTIALS names a service-account JSON file; without it the
    app uses Application Default Credentials.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cred_path = os.getenv("FIREBASE_CREDENTIALS")
    if not cred_path:
        logger.info("FIREBASE_CREDENTIALS not set, using application default credentials")
        return firebase_admin.initialize_app()

    if not os.path.isfile(cred_path):
        logger.error("Firebase credentials file not found", data={"path": cred_path})
        raise ServiceNotConfigured("Firebase", ["FIREBASE_CREDENTIALS"])
    return firebase_admin.initialize_app(credentials.Certificate(cred_path))


def get_firestore_client():
    global _firestore_client

    if _firestore_client is None:
        _firestore_client = firestore.client(app=get_firebase_app())
        logger.success("Firestore client ready")

    return _firestore_client


def reset_clients() -> None:
    """Forget cached clients so the next call re-reads the environment."""
    global _supabase_client, _firestore_client
    _supabase_client = None
    _firestore_client = None
