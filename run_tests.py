#!/usr/bin/env python3
"""Test runner script: pytest with coverage over the app package."""

import argparse
import os
import subprocess
import sys
import webbrowser
from pathlib import Path

COVERAGE_THRESHOLD = 85


def resolve_test_target(test_target):
    """Turn a bare file name into a path under tests/."""
    test_target = test_target.strip().lstrip("/")
    if test_target.startswith("tests/") or test_target.startswith("-"):
        return test_target

    if "/" in test_target or "\\" in test_target:
        return f"tests/{test_target}"

    file_name, _, selector = test_target.partition("::")
    for root, _dirs, files in os.walk("tests"):
        for file in files:
            if file in (file_name, f"{file_name}.py"):
                path = os.path.join(root, file)
                return f"{path}::{selector}" if selector else path

    if not file_name.endswith(".py"):
        file_name = f"{file_name}.py"
    return f"tests/{file_name}" + (f"::{selector}" if selector else "")


def open_html_report():
    """Open the HTML coverage report in the default browser."""
    report_path = Path("htmlcov/index.html")
    if not report_path.exists():
        print("HTML coverage report not found at htmlcov/index.html")
        return
    report_url = f"file://{report_path.absolute()}"
    print(f"Opening coverage report: {report_url}")
    if not webbrowser.open(report_url):
        print(f"Could not open a browser; open {report_path.absolute()} manually")


def run_tests(test_target=None, pytest_args=None, open_report=False):
    """Run all tests with coverage."""
    os.chdir(Path(__file__).parent)

    cmd = [
        sys.executable,
        "-m",
        "pytest",
        "-v",
        "--cov=app",
        "--cov-report=term-missing",
        "--cov-report=html",
        f"--cov-fail-under={COVERAGE_THRESHOLD}",
        "--tb=short",
    ]
    cmd.append(resolve_test_target(test_target) if test_target else "tests/")
    cmd.extend(pytest_args or [])

    print("Running tests with coverage...")
    result = subprocess.run(cmd)

    if result.returncode != 0:
        print("\nSome tests failed!")
        return result.returncode

    print("\nAll tests passed")
    print("Coverage report generated in htmlcov/index.html")
    if open_report:
        open_html_report()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Run the test suite with coverage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_tests.py                                  # Run all tests
  python run_tests.py --open-report                    # Run tests and open HTML report
  python run_tests.py test_checkout_service.py         # Run one file (found under tests/)
  python run_tests.py test_credit_rules::TestCompute   # Run one class
  python run_tests.py tests/checkout/                  # Run a directory
  python run_tests.py tests/ -k "mismatch"             # Pass extra pytest arguments
        """,
    )
    parser.add_argument(
        "--open-report",
        action="store_true",
        help="Open HTML coverage report in browser after successful test run",
    )
    parser.add_argument("test_target", nargs="?", help="File, class, test or directory")
    parser.add_argument(
        "pytest_args",
        nargs=argparse.REMAINDER,
        help="Additional arguments to pass to pytest",
    )

    args = parser.parse_args()
    sys.exit(
        run_tests(
            test_target=args.test_target,
            pytest_args=args.pytest_args,
            open_report=args.open_report,
        )
    )
