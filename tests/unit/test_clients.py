"""
Unit Tests for the Hosted Service Clients

Tests environment handling and caching of the Supabase and Firebase clients
without contacting either service.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))
sys.path.insert(0, os.path.join(project_root, "backend"))

from lib import clients
from lib.clients import ServiceNotConfigured


@pytest.fixture(autouse=True)
def fresh_clients():
    clients.reset_clients()
    yield
    clients.reset_clients()


class TestSupabaseClient:
    """Test suite for get_supabase_client."""

    def test_missing_settings(self, monkeypatch):
        """Test both missing variables are named in the error."""
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)

        with pytest.raises(ServiceNotConfigured) as exc_info:
            clients.get_supabase_client()

        assert exc_info.value.service == "Supabase"
        assert exc_info.value.missing == ["SUPABASE_URL", "SUPABASE_SERVICE_KEY"]

    def test_missing_key_only(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
        monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)

        with pytest.raises(ServiceNotConfigured) as exc_info:
            clients.get_supabase_client()

        assert exc_info.value.missing == ["SUPABASE_SERVICE_KEY"]

    def test_created_once(self, monkeypatch):
        """Test the client is built from the environment and then cached."""
        created = []

        def fake_create_client(url, key):
            created.append((url, key))
            return object()

        monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")
        monkeypatch.setattr(clients, "create_client", fake_create_client)

        first = clients.get_supabase_client()
        second = clients.get_supabase_client()

        assert first is second
        assert created == [("https://demo.supabase.co", "service-key")]

    def test_reset_rereads_environment(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")
        monkeypatch.setattr(clients, "create_client", lambda url, key: object())
        clients.get_supabase_client()

        clients.reset_clients()
        monkeypatch.delenv("SUPABASE_URL")

        with pytest.raises(ServiceNotConfigured):
            clients.get_supabase_client()


class TestFirebaseApp:
    """Test suite for get_firebase_app."""

    def test_missing_credentials_file(self, monkeypatch, tmp_path):
        """Test a FIREBASE_CREDENTIALS path that doesn't exist is a configuration error."""
        def no_app():
            raise ValueError("The default Firebase app does not exist.")

        monkeypatch.setattr(clients.firebase_admin, "get_app", no_app)
        monkeypatch.setenv("FIREBASE_CREDENTIALS", str(tmp_path / "missing.json"))

        with pytest.raises(ServiceNotConfigured) as exc_info:
            clients.get_firebase_app()

        assert exc_info.value.missing == ["FIREBASE_CREDENTIALS"]

    def test_existing_app_reused(self, monkeypatch):
        app = object()
        monkeypatch.setattr(clients.firebase_admin, "get_app", lambda: app)

        assert clients.get_firebase_app() is app
