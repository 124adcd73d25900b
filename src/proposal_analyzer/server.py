"""HTTP endpoint for the discount suggestion provider.

POST /api/suggestion   body: {property, unit, clientProposal}
GET  /health

For local development run `proposal-advisor-server`; PORT defaults to 8080.
"""
from __future__ import annotations

import logging
import os
from decimal import InvalidOperation
from typing import Callable

from flask import Flask, jsonify, make_response, request
from flask_cors import CORS

from .advisor import AdvisorError, ConfigurationError, api_key, generate_suggestion
from .config import DEFAULT_PORT, PORT_ENV
from .plan import DiscountSuggestion, PaymentPlan, Property, Unit

logger = logging.getLogger(__name__)

SuggestFn = Callable[[Property, Unit, PaymentPlan, str], DiscountSuggestion]

# OPTIONS stays with Flask so flask-cors can answer browser preflight requests
_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def create_app(suggest: SuggestFn = generate_suggestion) -> Flask:
    app = Flask(__name__)
    CORS(app)

    @app.route("/health", methods=["GET"])
    def health():
        """Health check for monitoring"""
        return jsonify({"status": "healthy"}), 200

    @app.route("/api/suggestion", methods=_ALL_METHODS)
    def suggestion():
        """Analyse a resolved proposal and return a discount suggestion."""
        if request.method != "POST":
            response = make_response("Method Not Allowed", 405)
            response.headers["Allow"] = "POST"
            return response

        input_data = request.get_json(silent=True)
        if not isinstance(input_data, dict) or not all(
            input_data.get(key) for key in ("property", "unit", "clientProposal")
        ):
            return jsonify({"error": "Missing required body parameters."}), 400

        try:
            prop = Property.from_dict(input_data["property"])
            unit = Unit.from_dict(input_data["unit"])
            plan = PaymentPlan.from_dict(input_data["clientProposal"])
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            logger.error(f"Validation error: {e!r}")
            return jsonify({"error": f"Validation error: {e}"}), 400

        try:
            key = api_key()
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return jsonify({"error": str(e)}), 500

        logger.info(f"Analysing proposal: {prop.name} / {unit.id}")
        try:
            result = suggest(prop, unit, plan, key)
        except AdvisorError as e:
            logger.error(f"Model call failed: {e}")
            return jsonify({
                "error": "Could not get a suggestion from the model.",
                "details": str(e),
            }), 500

        return jsonify(result.to_dict()), 200

    return app


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get(PORT_ENV, DEFAULT_PORT))
    create_app().run(host="0.0.0.0", port=port, debug=False)


if __name__ == "__main__":
    main()
