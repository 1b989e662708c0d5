#!/usr/bin/env python
"""
Build pipeline - loads the pricing tables, validates them and runs tests.

Usage:
    python scripts/build_all.py
"""
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from cap_pricing.data.catalog import build_catalog_report


def main():
    print("=" * 60)
    print("CAP PRICING BUILD PIPELINE")
    print("=" * 60)
    print()

    # Load + validate tables
    print("[1/2] Validating pricing tables...")
    report = build_catalog_report(verbose=True)

    if report["status"] != "success":
        print("\n❌ BUILD FAILED")
        for error in report["errors"]:
            print(f"  ERROR: {error}")
        sys.exit(1)

    print()
    print("[2/2] Running tests...")

    import subprocess
    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-v', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ BUILD COMPLETE")
    print("=" * 60)
    print()
    print("Record counts:")
    for table, count in report['metrics']['record_counts'].items():
        print(f"  {table}: {count}")
    if report['warnings']:
        print(f"\nWarnings: {len(report['warnings'])}")


if __name__ == "__main__":
    main()
