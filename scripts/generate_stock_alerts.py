#!/usr/bin/env python3
"""
Run one stock/expiration alert sweep.

Meant to be called on demand or by an external scheduler. Re-running is
safe: conditions that already have an open alert are skipped.

Usage:
    python scripts/generate_stock_alerts.py
    python scripts/generate_stock_alerts.py --component-id 12
"""
import argparse
import sys

from stockwatch.core.cache import build_summary_cache
from stockwatch.core.exceptions import PartialGenerationFailure, StockwatchException
from stockwatch.core.logger import init_logging
from stockwatch.db.session import session_scope
from stockwatch.services.alerts import build_alert_service


def run(component_id: int | None = None) -> int:
    """Run the sweep and return a process exit code."""
    try:
        with session_scope() as db:
            service = build_alert_service(db, cache=build_summary_cache())
            if component_id is not None:
                result = service.evaluate_component(component_id)
            else:
                result = service.generate_alerts()

        print(f"✅ {result.total_created} alert(s) generated")
        for alert_type, count in result.counts_by_type.items():
            print(f"   {alert_type.counter_key}: {count}")
        if result.superseded:
            print(f"   superseded minimum-stock alerts: {result.superseded}")

        result.raise_for_failures()
        return 0
    except PartialGenerationFailure as e:
        print(f"⚠️  {e.message}")
        for subject, subject_id in e.failed_items:
            print(f"   failed {subject} {subject_id}")
        return 2
    except StockwatchException as e:
        print(f"❌ {e.message}")
        return 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate stock and lot expiration alerts")
    parser.add_argument("--component-id", type=int, help="Only re-check this component")
    args = parser.parse_args()

    init_logging()
    sys.exit(run(args.component_id))


if __name__ == "__main__":
    main()
