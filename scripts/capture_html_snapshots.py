#!/usr/bin/env python3
"""
Capture HTML snapshots from the live ICBC booking portal for testing.

This script:
1. Logs in with the credentials from .env
2. Opens the reschedule workflow
3. Applies the configured search preferences and runs a search
4. Saves the HTML at each stage as test fixtures

Usage:
    python scripts/capture_html_snapshots.py
"""

import json
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import settings
from app.errors import DiscoveryError
from app.providers.authenticator import Authenticator
from app.providers.browser_session import session_manager
from app.providers.navigator import Navigator
from app.providers.search_configurator import SearchConfigurator
from app.services.discovery_service import load_discovery_inputs

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"

PAGE_LOAD_WAIT = 2


def save_snapshot(driver, name: str, metadata: dict | None = None) -> Path:
    """Save HTML snapshot and metadata."""
    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)

    html_path = FIXTURES_DIR / f"{name}.html"
    html_path.write_text(driver.page_source, encoding="utf-8")
    print(f"  Saved: {html_path}")

    if metadata:
        meta_path = FIXTURES_DIR / f"{name}.meta.json"
        metadata["url"] = driver.current_url
        metadata["title"] = driver.title
        metadata["captured_at"] = time.strftime("%Y-%m-%d %H:%M:%S")
        meta_path.write_text(json.dumps(metadata, indent=2), encoding="utf-8")
        print(f"  Saved: {meta_path}")

    return html_path


def capture_snapshots():
    """Main capture routine."""
    print("=" * 60)
    print("ICBC Portal HTML Snapshot Capture")
    print("=" * 60)

    try:
        credentials, preferences = load_discovery_inputs(settings)
    except DiscoveryError as e:
        print(f"ERROR: {e}")
        print("Set ICBC_LAST_NAME, ICBC_LICENCE_NUMBER and ICBC_KEYWORD in .env")
        sys.exit(1)

    with session_manager.session() as session:
        driver = session.driver

        print("\n[1/4] Capturing login page...")
        driver.get(settings.icbc_login_url)
        time.sleep(PAGE_LOAD_WAIT)
        save_snapshot(driver, "captured_login_page", {"state": "login_form"})

        try:
            print("\n[2/4] Logging in...")
            Authenticator().authenticate(session, credentials)
            save_snapshot(driver, "captured_overview_page", {"state": "after_login"})

            print("\n[3/4] Opening reschedule workflow...")
            Navigator().navigate_to_scheduling(session)
            save_snapshot(driver, "captured_search_page", {"state": "search_form"})

            print("\n[4/4] Running search...")
            results = SearchConfigurator().configure_and_search(session, preferences)
            save_snapshot(
                driver,
                "captured_results_page",
                {"state": "results", "summary": results.summary()},
            )
        except DiscoveryError as e:
            print(f"\nERROR: {e}")
            save_snapshot(driver, "captured_error_page", {"state": "error", "error": str(e)})

        print("\n" + "=" * 60)
        print("Snapshot capture complete!")
        print(f"Fixtures saved to: {FIXTURES_DIR}")
        print("=" * 60)

        print("\nSaved files:")
        for f in sorted(FIXTURES_DIR.glob("captured_*")):
            print(f"  - {f.name}")

    print("\nDriver closed.")


if __name__ == "__main__":
    capture_snapshots()
