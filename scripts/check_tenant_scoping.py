#!/usr/bin/env python3
"""
Multi-tenancy scoping lint check.

Scans the backend for common tenant-isolation mistakes:
1. Hardcoded company_id constants or literals
2. Queries on company-owned tables without a company_id filter
3. Appointment bulk updates that forget the company filter

USAGE:
    python scripts/check_tenant_scoping.py

    # Verbose output, fail on critical/high findings (CI)
    python scripts/check_tenant_scoping.py -v --strict

EXIT CODES:
    0 - No issues found (or only warnings without --strict)
    1 - Critical/high issues found with --strict
"""

import argparse
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

# ────────────────────────────────────────────────────────────────
# Configuration
# ────────────────────────────────────────────────────────────────

# Root directory to scan
SCAN_ROOT = Path(__file__).parent.parent / "Backend" / "salonhub"

# Files/directories to exclude
EXCLUDE_PATTERNS = [
    "__pycache__",
    ".pyc",
    "tenancy/",  # Tenancy helpers are where the scoping lives
    "seed.py",   # Demo seed creates its own company
    "test_",
]

# Company-owned models; a select() on any of these must be scoped
SCOPED_MODELS = ["Appointment", "Client", "Employee", "Service", "Payment", "Notification"]

# Patterns that indicate tenant scoping issues
BAD_PATTERNS: List[Tuple[str, str, str]] = [
    # (pattern, severity, description)
    (
        r"^[A-Z_]*COMPANY_ID\s*=\s*\d+",
        "CRITICAL",
        "Hardcoded COMPANY_ID constant - resolve the company from CompanyContext",
    ),
    (
        r"company_id\s*=\s*\d+[,\)\s]",
        "WARNING",
        "Hardcoded company_id literal - should come from CompanyContext",
    ),
    (
        r"update\(Appointment\)(?!.*company_id)",
        "HIGH",
        "Appointment bulk update without company filter - touches every tenant",
    ),
] + [
    (
        rf"select\({model}\)(?!.*company_id)",
        "HIGH",
        f"{model} query without company_id filter - potential cross-tenant leak",
    )
    for model in SCOPED_MODELS
]

# Patterns that are OK (suppress false positives)
IGNORE_PATTERNS = [
    r"^\s*#",  # Comments
    r"company_id: int",  # Type annotations
    r"company_id=company_id",  # Passing through
    r"company_id=ctx\.company_id",  # Using context
    r"noqa:\s*tenant-scoping",  # Explicit suppression
]

# A flagged query is fine if one of these shows up within the next few lines
SCOPED_CONTEXT = re.compile(
    r"\.company_id\s*==|tenant_filter\(|scoped_select\(|_live_appointments\(|company_id\s*=\s*ctx\.company_id"
)


# ────────────────────────────────────────────────────────────────
# Data Classes
# ────────────────────────────────────────────────────────────────

@dataclass
class Finding:
    """A single tenant scoping issue."""

    file: Path
    line_num: int
    line_text: str
    severity: str
    description: str

    def __str__(self):
        return f"{self.severity}: {self.file}:{self.line_num} - {self.description}\n  > {self.line_text.strip()}"


# ────────────────────────────────────────────────────────────────
# Scanning Logic
# ────────────────────────────────────────────────────────────────

def should_exclude(path: Path) -> bool:
    path_str = path.as_posix()
    return any(excl in path_str for excl in EXCLUDE_PATTERNS)


def should_ignore_line(line: str) -> bool:
    return any(re.search(pattern, line) for pattern in IGNORE_PATTERNS)


def scan_file(file_path: Path) -> List[Finding]:
    """Scan a single file for tenant scoping issues."""
    findings = []

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Warning: Could not read {file_path}: {e}", file=sys.stderr)
        return []

    lines = content.split("\n")

    for line_num, line in enumerate(lines, 1):
        if should_ignore_line(line):
            continue

        for pattern, severity, description in BAD_PATTERNS:
            if not re.search(pattern, line):
                continue
            if severity == "HIGH":
                # Multi-line statements: look at this line plus the next 6
                context_window = "\n".join(lines[line_num - 1:line_num + 6])
                if SCOPED_CONTEXT.search(context_window) or "noqa: tenant-scoping" in context_window:
                    continue
            findings.append(Finding(
                file=file_path,
                line_num=line_num,
                line_text=line,
                severity=severity,
                description=description,
            ))

    return findings


def scan_directory(root: Path) -> List[Finding]:
    all_findings = []
    for path in sorted(root.rglob("*.py")):
        if should_exclude(path):
            continue
        all_findings.extend(scan_file(path))
    return all_findings


# ────────────────────────────────────────────────────────────────
# Reporting
# ────────────────────────────────────────────────────────────────

SEVERITY_ORDER = ["CRITICAL", "HIGH", "MEDIUM", "WARNING", "INFO"]
SEVERITY_EMOJI = {
    "CRITICAL": "🔴",
    "HIGH": "🟠",
    "MEDIUM": "🟡",
    "WARNING": "🟣",
    "INFO": "🔵",
}


def print_report(findings: List[Finding], verbose: bool = False):
    if not findings:
        print("✅ No tenant scoping issues found!")
        return

    by_severity = {}
    for f in findings:
        by_severity.setdefault(f.severity, []).append(f)

    print("\n" + "=" * 60)
    print("MULTI-TENANCY SCOPING CHECK REPORT")
    print("=" * 60)

    print("\nSUMMARY:")
    for sev in SEVERITY_ORDER:
        count = len(by_severity.get(sev, []))
        if count > 0:
            print(f"  {SEVERITY_EMOJI.get(sev, '⚪')} {sev}: {count}")

    print(f"\nTOTAL: {len(findings)} issues")

    if verbose:
        print("\n" + "-" * 60)
        print("DETAILS:")
        print("-" * 60)
        for sev in SEVERITY_ORDER:
            if sev in by_severity:
                print(f"\n{SEVERITY_EMOJI.get(sev, '⚪')} {sev}:")
                for f in by_severity[sev]:
                    print(f"  {f.file}:{f.line_num}")
                    print(f"    {f.description}")
                    print(f"    > {f.line_text.strip()[:80]}")
    else:
        print("\nRun with -v for detailed findings.")

    print("\n" + "=" * 60)


# ────────────────────────────────────────────────────────────────
# Main
# ────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(
        description="Check the backend for multi-tenancy scoping issues"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed findings")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 1 if critical/high issues are found (for CI)",
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=SCAN_ROOT,
        help=f"Path to scan (default: {SCAN_ROOT})",
    )

    args = parser.parse_args()

    if not args.path.exists():
        print(f"Error: Path {args.path} does not exist", file=sys.stderr)
        sys.exit(1)

    print(f"Scanning {args.path}...")
    findings = scan_directory(args.path)

    print_report(findings, verbose=args.verbose)

    if args.strict and findings:
        critical_count = sum(1 for f in findings if f.severity in ("CRITICAL", "HIGH"))
        if critical_count > 0:
            print(f"\n❌ {critical_count} critical/high issues found. Failing.")
            sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
