#!/usr/bin/env python3
"""
Check that the analytics warehouse is reachable with the current environment.

Usage:
    python scripts/test_bigquery.py

Exits 0 when the dataset is reachable, 1 otherwise.
"""

import sys

from a11y_insights.features.analytics.services.connection_validator import ConnectionValidator


def main() -> int:
    validator = ConnectionValidator()
    report = validator.validate()
    stream = sys.stdout if report.ok else sys.stderr
    for line in validator.format_report(report):
        print(line, file=stream)
    return validator.exit_code(report)


if __name__ == "__main__":
    sys.exit(main())
