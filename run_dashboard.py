#!/usr/bin/env python3
"""Start the club finance dashboard.

Usage: ``python run_dashboard.py [extra streamlit args]``.  Equivalent to
``streamlit run club_finance/Home.py`` from the project root.
"""

import subprocess
import sys
from pathlib import Path

APP = Path(__file__).parent.resolve() / "club_finance" / "Home.py"


def main(argv=None) -> int:
    command = [sys.executable, "-m", "streamlit", "run", str(APP), *(argv or [])]
    return subprocess.call(command, cwd=APP.parent)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
