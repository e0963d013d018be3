#!/usr/bin/env python3
"""
Validate the CSS strategies of the DOM schema against HTML fixtures.

This script:
1. Collects every CSS locator from app/providers/icbc_dom_schema.py
2. Tests each one against the matching HTML fixture (live captures preferred)
3. Reports which strategies match and which chains have no working CSS fallback

XPath, role and text strategies need a browser and are listed as skipped.

Usage:
    python scripts/validate_selectors.py
"""

import json
import sys
from dataclasses import fields
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bs4 import BeautifulSoup

from app.providers.icbc_dom_schema import DOM
from app.providers.locators import Locator, LocatorKind

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"

# Which page each selector group lives on
GROUP_PAGES = {
    "LOGIN": "login_page",
    "NAVIGATION": "overview_page",
    "LOCATION": "search_page",
    "DAYS": "search_page",
    "SEARCH": "search_page",
    "RESULTS": "results_page",
}


def load_html(page: str) -> BeautifulSoup | None:
    """Load a live capture if present, otherwise the checked-in fixture."""
    for prefix in ("captured", "icbc"):
        html_path = FIXTURES_DIR / f"{prefix}_{page}.html"
        if html_path.exists():
            return BeautifulSoup(html_path.read_text(encoding="utf-8"), "html.parser")
    return None


def locator_chains(group) -> dict[str, tuple[Locator, ...]]:
    chains = {}
    for field in fields(group):
        value = getattr(group, field.name)
        if isinstance(value, tuple) and value and isinstance(value[0], Locator):
            chains[field.name] = value
    return chains


def test_selector(soup: BeautifulSoup, selector: str) -> tuple[int, list[str]]:
    """Test a CSS selector against HTML and return match count and sample text."""
    try:
        elements = soup.select(selector)
        samples = []
        for el in elements[:3]:  # First 3 matches
            text = el.get_text(strip=True)[:50]
            classes = el.get("class", [])
            class_str = ".".join(classes) if classes else ""
            samples.append(f"<{el.name} class='{class_str}'>{text}...")
        return len(elements), samples
    except Exception as e:
        return -1, [f"ERROR: {e}"]


def validate_selectors():
    """Main validation routine."""
    print("=" * 70)
    print("ICBC DOM Selector Validation Report")
    print("=" * 70)

    results = {"working": [], "broken": [], "errors": [], "uncovered_chains": []}

    for group_field in fields(DOM):
        group_name = group_field.name
        soup = load_html(GROUP_PAGES[group_name])

        print(f"\n{'=' * 70}")
        print(f"Group: {group_name}")
        print("=" * 70)

        if soup is None:
            print("  SKIPPED: No fixture available")
            continue

        for chain_name, chain in locator_chains(getattr(DOM, group_name)).items():
            chain_has_match = False
            print(f"\n  {chain_name}:")
            for strategy in chain:
                if strategy.kind != LocatorKind.CSS:
                    print(f"    [-] SKIPPED {strategy}")
                    continue

                count, samples = test_selector(soup, strategy.value)
                if count > 0:
                    chain_has_match = True
                    results["working"].append((group_name, chain_name, strategy.value, count))
                    print(f"    [OK] {strategy} ({count} matches)")
                    for sample in samples:
                        print(f"         Sample: {sample}")
                elif count == 0:
                    results["broken"].append((group_name, chain_name, strategy.value))
                    print(f"    [X]  {strategy}")
                else:
                    results["errors"].append((group_name, chain_name, strategy.value, samples[0]))
                    print(f"    [!]  {strategy}: {samples[0]}")

            if not chain_has_match:
                results["uncovered_chains"].append((group_name, chain_name))

    # Summary
    print("\n" + "=" * 70)
    print("SUMMARY")
    print("=" * 70)

    print(f"\n[OK] Working CSS strategies: {len(results['working'])}")
    print(f"[X]  Unmatched CSS strategies: {len(results['broken'])}")
    print(f"[!]  Invalid CSS strategies: {len(results['errors'])}")

    if results["uncovered_chains"]:
        print("\n" + "-" * 70)
        print("CHAINS WITH NO MATCHING CSS STRATEGY (need attention):")
        print("-" * 70)
        for group_name, chain_name in results["uncovered_chains"]:
            print(f"  [{group_name}] {chain_name}")

    report_path = FIXTURES_DIR / "selector_report.json"
    report = {
        "working": [
            {"group": g, "chain": c, "selector": s, "count": cnt}
            for g, c, s, cnt in results["working"]
        ],
        "broken": [{"group": g, "chain": c, "selector": s} for g, c, s in results["broken"]],
        "errors": [
            {"group": g, "chain": c, "selector": s, "error": e}
            for g, c, s, e in results["errors"]
        ],
        "uncovered_chains": [{"group": g, "chain": c} for g, c in results["uncovered_chains"]],
    }
    report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"\nReport saved to: {report_path}")


if __name__ == "__main__":
    validate_selectors()
