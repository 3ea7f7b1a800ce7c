"""Flask application entry point for the doctor directory."""
from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request

import directory_source
from directory_source import DirectoryFetchError, fetch_raw_doctors, peek_directory
from filters import decode_query, encode_query, visible
from listing import current_directory, listing_bp
from suggestions import suggest

load_dotenv()

app = Flask(__name__, static_folder="static", template_folder="templates")
app.config["SECRET_KEY"] = os.environ.get("DOCLIST_SECRET_KEY", "doclist-secret-key")
app.config["URL_SYNC_ENABLED"] = (os.getenv("FILTER_URL_SYNC", "true") or "").strip().lower() in {
    "1",
    "true",
    "yes",
    "on",
}
app.config["DOCTORS_API_URL"] = directory_source.DOCTORS_API_URL
app.config["DOCTORS_API_TIMEOUT_SECONDS"] = directory_source.DOCTORS_API_TIMEOUT_SECONDS
app.config["DIRECTORY_CACHE_TTL_SECONDS"] = directory_source.DIRECTORY_CACHE_TTL_SECONDS
app.register_blueprint(listing_bp)
logger = logging.getLogger(__name__)


@app.route("/api/doctors", methods=["GET"])
def proxy_doctors():
    try:
        data = fetch_raw_doctors(app.config["DOCTORS_API_URL"], app.config["DOCTORS_API_TIMEOUT_SECONDS"])
    except DirectoryFetchError as exc:
        logger.error("Error fetching doctors: %s", exc)
        return jsonify({"message": "Error fetching doctor data", "error": str(exc)}), 500
    return jsonify(data)


@app.route("/api/listing", methods=["GET"])
def listing_data():
    directory = current_directory()
    if not directory.ok:
        return jsonify({"success": False, "error": directory.error}), 503

    filters = decode_query(request.args)
    return jsonify(
        {
            "success": True,
            "data": {
                "doctors": [doctor.to_dict() for doctor in visible(directory.doctors, filters)],
                "specialties": list(directory.specialties),
                "filters": filters.to_dict(),
                "query": encode_query(filters),
            },
        }
    )


@app.route("/api/suggestions", methods=["GET"])
def suggestions():
    query = request.args.get("q", "")
    directory = current_directory()
    if not directory.ok:
        return jsonify({"success": False, "error": directory.error}), 503

    matches = suggest(directory.doctors, query)
    return jsonify(
        {
            "success": True,
            "data": [
                {
                    "id": doctor.id,
                    "name": doctor.name,
                    "specialty": list(doctor.specialty),
                    "image": doctor.image,
                    "initials": doctor.initials,
                }
                for doctor in matches
            ],
        }
    )


@app.route("/healthz", methods=["GET"])
def healthz():
    cached = peek_directory(app.config["DOCTORS_API_URL"], app.config["DIRECTORY_CACHE_TTL_SECONDS"])
    return jsonify(
        {
            "success": True,
            "status": "ok",
            "directory": {"status": cached.status.value, "doctors": len(cached.doctors)},
        }
    )


@app.errorhandler(404)
def handle_not_found(_):
    return jsonify({"success": False, "error": "Endpoint not found."}), 404


@app.errorhandler(500)
def handle_server_error(error):
    return jsonify({"success": False, "error": str(error)}), 500


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
