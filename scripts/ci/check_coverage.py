"""
Report per-package coverage of compilerkit and enforce a minimum total.

Reads the Cobertura XML written by ``pytest --cov=compilerkit --cov-report=xml``.

Usage:
    python scripts/ci/check_coverage.py [--file coverage.xml] [--threshold 80]
"""

import argparse
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Optional


def read_coverage(coverage_file: Path) -> Optional[Dict[str, float]]:
    """
    Line coverage percentages from a Cobertura report.

    Returns:
        Mapping of package name to percentage, with the overall figure under
        the key "total"; None if the report is missing or unreadable
    """
    if not coverage_file.exists():
        print(f"ERROR: Coverage file not found: {coverage_file}")
        return None

    try:
        root = ET.parse(coverage_file).getroot()
    except ET.ParseError as e:
        print(f"ERROR: Failed to parse coverage file: {e}")
        return None

    try:
        rates = {
            package.attrib["name"]: float(package.attrib["line-rate"]) * 100
            for package in root.iter("package")
        }
        rates["total"] = float(root.attrib.get("line-rate", 0)) * 100
    except (KeyError, ValueError) as e:
        print(f"ERROR: Invalid coverage data: {e}")
        return None

    return rates


def check_coverage(coverage_file: Path, threshold: float = 80.0) -> bool:
    """
    Print the per-package table and compare the total against threshold.

    Returns:
        True if total coverage meets threshold
    """
    rates = read_coverage(coverage_file)
    if rates is None:
        return False

    total = rates.pop("total")
    width = max((len(name) for name in rates), default=10)
    for name in sorted(rates):
        print(f"  {name:<{width}}  {rates[name]:6.2f}%")

    print(f"Total coverage: {total:.2f}% (required: {threshold:.2f}%)")
    if total < threshold:
        print(f"ERROR: Coverage {total:.2f}% is below threshold {threshold:.2f}%")
        return False

    print("✓ Coverage meets threshold")
    return True


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--file", type=Path, default=Path("coverage.xml"), help="Cobertura XML report"
    )
    parser.add_argument(
        "--threshold", type=float, default=80.0, help="Minimum total line coverage"
    )
    args = parser.parse_args()

    sys.exit(0 if check_coverage(args.file, args.threshold) else 1)


if __name__ == "__main__":
    main()
