"""Listing blueprint: the doctor directory page and its filter reducer."""
from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, redirect, render_template, request, session, url_for

from directory import ConsultationType
from directory_source import DirectoryLoad, load_directory
from filters import FilterState, SortKey, decode_query, encode_query, reduce_filters, visible

listing_bp = Blueprint("listing", __name__)
logger = logging.getLogger(__name__)

SESSION_FILTER_KEY = "filter_query"

SORT_LABELS = {
    SortKey.FEES: "Price: Low-High",
    SortKey.EXPERIENCE: "Experience: Most Experience first",
}

CONSULTATION_LABELS = {
    ConsultationType.VIDEO: "Video Consultation",
    ConsultationType.IN_CLINIC: "In-clinic Consultation",
}


def _url_sync_enabled() -> bool:
    return bool(current_app.config.get("URL_SYNC_ENABLED", True))


def _stored_filter_state() -> FilterState:
    return decode_query(session.get(SESSION_FILTER_KEY, ""))


def current_filter_state() -> FilterState:
    """Resolve the filter state for this request from the URL or the session."""
    if _url_sync_enabled():
        return decode_query(request.args)
    return _stored_filter_state()


def current_directory() -> DirectoryLoad:
    config = current_app.config
    return load_directory(
        url=config.get("DOCTORS_API_URL"),
        timeout=config.get("DOCTORS_API_TIMEOUT_SECONDS"),
        cache_ttl=config.get("DIRECTORY_CACHE_TTL_SECONDS"),
    )


def _listing_url(query: str) -> str:
    base = url_for("listing.index")
    return f"{base}?{query}" if query else base


@listing_bp.route("/")
def index():
    filters = current_filter_state()
    directory = current_directory()
    if not directory.ok:
        logger.warning("Rendering directory error page: %s", directory.error)
        return render_template("listing/error.html", error=directory.error), 503

    doctors = visible(directory.doctors, filters)
    return render_template(
        "listing/index.html",
        doctors=doctors,
        total=len(directory.doctors),
        specialties=directory.specialties,
        filters=filters,
        state_query=encode_query(filters),
        sort_labels=SORT_LABELS,
        consultation_labels=CONSULTATION_LABELS,
        url_sync=_url_sync_enabled(),
    )


@listing_bp.route("/filters", methods=["POST"])
def update_filters():
    # sidebar buttons carry the action in their formaction query string
    action = (request.form.get("action") or request.args.get("action") or "").strip()
    value = request.form.get("value") or ""

    if _url_sync_enabled():
        current = decode_query(request.form.get("state", ""))
    else:
        current = _stored_filter_state()

    try:
        transition = reduce_filters(current, action, value)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    if _url_sync_enabled():
        return redirect(_listing_url(transition.query), code=303)

    session[SESSION_FILTER_KEY] = transition.query
    session.modified = True
    return redirect(url_for("listing.index"), code=303)
