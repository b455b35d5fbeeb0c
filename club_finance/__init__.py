"""Top-level package for the Club Finance Dashboard.

The primary modules are:

* ``db`` - the SQLite store for transactions, members, dues, budgets and reminders
* ``aggregation`` - pure reductions behind every figure the pages show
* ``services`` - validated writes and composed reads used by the pages
* ``visualization`` - functions that generate Plotly figures
* ``reports`` - monthly financial and membership reports

To run the dashboard from the command line you can execute:

```bash
streamlit run club_finance/Home.py
```

or use ``run_dashboard.py`` at the project root.
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import formatting  # noqa: F401  # re-exported for convenience

__all__ = ["aggregation", "formatting"]
