import sys
import argparse
import datetime
from pathlib import Path

import pytest

# Add project root to sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Configuration
TESTS_DIR = PROJECT_ROOT / 'tests'
OUTPUT_FILE = TESTS_DIR / 'latest_results.log'


class Tee:
    """Write to several streams at once (console and results log)."""

    def __init__(self, *streams):
        self.streams = streams

    def write(self, data):
        for stream in self.streams:
            stream.write(data)
            stream.flush()

    def flush(self):
        for stream in self.streams:
            stream.flush()

    def isatty(self):
        return False


def run_tests(targets=None, extra_args=()):
    """
    Run the mdslides suite with pytest, mirroring the output into
    tests/latest_results.log. Returns pytest's exit code.
    """
    print(f"Running mdslides tests, results in: {OUTPUT_FILE}")

    with open(OUTPUT_FILE, 'w', encoding='utf-8') as f:
        f.write(f"Test Run: {datetime.datetime.now()}\n")
        f.write("=" * 60 + "\n\n")
        f.flush()

        original_stdout, original_stderr = sys.stdout, sys.stderr
        sys.stdout = Tee(original_stdout, f)
        sys.stderr = Tee(original_stderr, f)
        try:
            # -ra: summary of reasons for everything except passes
            exit_code = pytest.main(["-v", "-ra", *(targets or [str(TESTS_DIR)]), *extra_args])
        finally:
            sys.stdout, sys.stderr = original_stdout, original_stderr

        f.write("\n" + "=" * 60 + "\n")
        f.write(f"Run Completed. Exit Code: {int(exit_code)}\n")

    return int(exit_code)


def main():
    parser = argparse.ArgumentParser(description='Run the mdslides test suite')
    parser.add_argument('-k', dest='keyword', help='Only run tests matching this expression')
    parser.add_argument('--server-only', action='store_true', help='Only run the slides server tests')
    args = parser.parse_args()

    extra = ['-k', args.keyword] if args.keyword else []
    targets = [str(TESTS_DIR / 'test_server.py')] if args.server_only else None
    return run_tests(targets, extra)


if __name__ == "__main__":
    sys.exit(0 if main() == 0 else 1)
