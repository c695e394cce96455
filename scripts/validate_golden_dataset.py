#!/usr/bin/env python3
import json
import sys
from pathlib import Path

from payslip_auditor.testing.golden import GOLDEN_CASES, check_golden_dataset, golden_case_summary


def validate_golden_dataset(report_path: Path | None = None) -> list[str]:
    print(f"Validating golden payslip cases ({len(GOLDEN_CASES)})")

    ids = [case.id for case in GOLDEN_CASES]
    duplicates = sorted({case_id for case_id in ids if ids.count(case_id) > 1})
    if duplicates:
        print(f"ERROR: Duplicate golden case ids: {duplicates}")
        sys.exit(1)

    failing = check_golden_dataset()
    for case in GOLDEN_CASES:
        status = "FAIL" if case.id in failing else "ok"
        print(f"- {case.id}: {status}")

    if report_path is not None:
        report = {
            "cases": [golden_case_summary(case) for case in GOLDEN_CASES],
            "failing": failing,
        }
        report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        print(f"Report written to {report_path}")

    if failing:
        print(f"ERROR: Rule output drifted for {len(failing)} case(s): {', '.join(failing)}")
        sys.exit(1)
    print("SUCCESS: Golden dataset matches the rule set.")
    return failing


if __name__ == "__main__":
    validate_golden_dataset(Path(sys.argv[1]) if len(sys.argv) > 1 else None)
