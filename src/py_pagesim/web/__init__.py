"""Browser-facing HTTP API for the page-replacement simulator.

This package provides a Flask application that replays access traces
against any policy and returns the narrated result as JSON.  It is an
**optional** extra — install with::

    pip install py-pagesim[web]

The ``create_app`` factory in ``app.py`` serves two endpoints:

- ``GET /api/policies`` — policy names and their default options.
- ``POST /api/simulate`` — replay a trace and return events, narration,
  the final snapshot and counters.
"""
