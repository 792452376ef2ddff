"""Flask application factory for the simulator's HTTP API.

The ``create_app`` function returns a Flask app with two endpoints:

- ``GET /api/policies`` — list policy names with their default options.
- ``POST /api/simulate`` — replay a trace and return JSON.

``/api/simulate`` expects a JSON body::

    {"policy": "two-list", "options": {"capacity": 5},
     "trace": [1, 2, [3, true], {"page": 4, "write": false}],
     "step": 0}

and answers with ``events``, ``narration``, ``snapshot`` and ``stats``.
Every request builds a fresh policy with its own logical clock, so
requests never share state.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, Response, jsonify, request

from py_pagesim.clock import LogicalClock
from py_pagesim.config import ConfigurationError
from py_pagesim.events import AccessEvent
from py_pagesim.narrate import narrate, render_snapshot, render_stats
from py_pagesim.simulation import POLICIES, create_policy, policy_defaults, run_trace

_HTTP_BAD_REQUEST = 400


def _event_json(event: AccessEvent) -> dict[str, Any]:
    return {
        "page": event.page_id,
        "kind": str(event.kind),
        "write": event.is_write,
        "time": event.time,
        "effects": [{"kind": str(e.kind), "page": e.page_id} for e in event.effects],
    }


def create_app() -> Flask:
    """Create and configure the Flask application.

    Returns:
        A configured Flask application ready to serve.

    """
    app = Flask(__name__)

    @app.route("/api/policies")
    def policies() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return every policy name with its default options."""
        return jsonify({name: policy_defaults(name) for name in POLICIES})

    @app.route("/api/simulate", methods=["POST"])
    def simulate() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Replay a trace and return the narrated result.

        Returns:
            JSON with ``events``, ``narration``, ``snapshot`` and ``stats``,
            or an ``error`` field with status 400.

        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or "policy" not in data or "trace" not in data:
            return jsonify({"error": "Missing 'policy' or 'trace' field"}), _HTTP_BAD_REQUEST

        options = data.get("options") or {}
        if not isinstance(options, dict):
            return jsonify({"error": "'options' must be an object"}), _HTTP_BAD_REQUEST

        clock = LogicalClock()
        try:
            policy = create_policy(str(data["policy"]), clock=clock, **options)
            result = run_trace(policy, data["trace"], clock=clock, step=float(data.get("step", 0)))
        except (ConfigurationError, TypeError, ValueError) as exc:
            return jsonify({"error": str(exc)}), _HTTP_BAD_REQUEST

        return jsonify(
            {
                "policy": policy.name,
                "events": [_event_json(e) for e in result.events],
                "narration": narrate(result.events),
                "snapshot": result.snapshot.to_dict(),
                "state": render_snapshot(result.snapshot),
                "stats": result.stats.to_dict(),
                "summary": render_stats(result.stats),
            }
        )

    return app
