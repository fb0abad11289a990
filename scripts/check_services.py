"""Connectivity check for the portal's hosted services.

Checks that env vars are present, resolves the Supabase host, hits its health
endpoint without the SDK, and confirms the Firebase service-account file and
the grid dataset can be read.
"""

import json
import os
import socket
import sys
from pathlib import Path
from urllib.parse import urlparse

import requests
from dotenv import load_dotenv

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root / "explorer_portal" / "src"))


def check_supabase() -> bool:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_KEY")

    print("SUPABASE_URL:", url)
    print("SUPABASE_SERVICE_KEY (prefix):", key[:12] + "..." if key else None)

    if not url or not key:
        print("❌ Missing SUPABASE_URL or SUPABASE_SERVICE_KEY")
        return False

    parsed = urlparse(url)
    try:
        infos = socket.getaddrinfo(parsed.hostname, 443, proto=socket.IPPROTO_TCP)
        print("Resolved IPs:", ", ".join({info[4][0] for info in infos}))
    except socket.gaierror as exc:
        print("❌ DNS resolution failed:", exc)
        return False

    health_url = f"{parsed.scheme}://{parsed.hostname}/auth/v1/health"
    try:
        resp = requests.get(health_url, timeout=10, headers={"apikey": key})
    except requests.RequestException as exc:
        print("❌ HTTP request failed:", exc)
        return False

    print("Health status:", resp.status_code)
    return resp.ok


def check_firebase() -> bool:
    cred_path = os.getenv("FIREBASE_CREDENTIALS")
    if not cred_path:
        print("⚠️ FIREBASE_CREDENTIALS not set; Application Default Credentials will be used")
        return True

    try:
        with open(cred_path, "r", encoding="utf-8") as fh:
            project_id = json.load(fh).get("project_id")
    except (OSError, json.JSONDecodeError) as exc:
        print("❌ Could not read service account:", exc)
        return False

    print("Firebase project:", project_id)
    return bool(project_id)


def check_grid() -> bool:
    from explorer_portal.grid_data import load_grid_data

    try:
        grid = load_grid_data(os.getenv("GRID_DATA_PATH"))
    except (OSError, ValueError, KeyError) as exc:
        print("❌ Grid dataset failed to load:", exc)
        return False

    print(f"Grid dataset: {len(grid.cells)} cells, size {grid.grid_size}")
    return True


def main() -> int:
    load_dotenv(project_root / ".env")

    results = {}
    for name, check in (("supabase", check_supabase), ("firebase", check_firebase), ("grid", check_grid)):
        print(f"\n🔍 {name}")
        results[name] = check()

    print()
    for name, ok in results.items():
        print(f"{'✅' if ok else '❌'} {name}")
    return 0 if all(results.values()) else 1


if __name__ == "__main__":
    raise SystemExit(main())
