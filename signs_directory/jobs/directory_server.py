"""HTTP entrypoint serving the city directory (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, redirect, request

from signs_directory.core.config import get_settings
from signs_directory.directory.errors import BusinessNotFound, FetchFailed, GroupNotFound
from signs_directory.directory.factory import build_service
from signs_directory.directory.service import DirectoryService
from signs_directory.directory.sitemap import render_sitemap
from signs_directory.models import Business, CitySummary

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & service ----------
app = Flask(__name__)
_service: Optional[DirectoryService] = None

LEGACY_REDIRECTS = (
    "/shop-sign-suppliers-brighton",
    "/vehicle-signage-suppliers-brighton",
    "/vehicle-signage-sussex",
    "/vehicle-wraps-suppliers-sussex",
    "/public-private-signs-worthing",
    "/luminated-led-signs-brighton",
    "/boat-names-stripes-brighton",
    "/personal-clothing-printing-sussex",
    "/large-format-printing-sussex",
    "/self-adhesive-letter-printing-sussex",
    "/contact-a-to-z-of-signs",
    "/signage-design-and-supply-brighton",
)


def get_service() -> DirectoryService:
    global _service
    if _service is None:
        _service = build_service(get_settings())
    return _service


def _city_payload(city: CitySummary) -> Dict[str, Any]:
    return {
        "name": city.name,
        "slug": city.slug,
        "count": city.count,
        "average_rating": round(city.average_rating, 2),
        "variants": list(city.variants),
    }


def _business_payload(business: Business) -> Dict[str, Any]:
    payload = asdict(business)
    payload.pop("raw", None)
    if business.updated_at is not None:
        payload["updated_at"] = business.updated_at.isoformat()
    return payload


# ---------- Error handlers ----------


@app.errorhandler(FetchFailed)
def handle_fetch_failed(exc: FetchFailed) -> Any:
    logger.error("Directory unavailable: %s", exc)
    return jsonify({"error": "directory temporarily unavailable"}), 503


@app.errorhandler(GroupNotFound)
@app.errorhandler(BusinessNotFound)
def handle_not_found(exc: Exception) -> Any:
    return jsonify({"error": str(exc)}), 404


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; does not touch the store."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "store_backend": settings.store_backend,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/api/cities")
def list_cities() -> Any:
    settings = get_settings()
    limit_raw = request.args.get("limit")
    limit = settings.home_city_limit
    if limit_raw is not None:
        try:
            limit = int(limit_raw)
        except (TypeError, ValueError):
            return jsonify({"error": "limit must be numeric"}), 400
        if limit <= 0:
            return jsonify({"error": "limit must be positive"}), 400

    listing = get_service().home_listing(limit=limit)
    return jsonify(
        {
            "data": {
                "cities": [_city_payload(city) for city in listing.cities],
                "total_businesses": listing.total_businesses,
                "total_cities": listing.total_cities,
                "overall_average_rating": round(listing.overall_average_rating, 2),
            }
        }
    )


@app.get("/api/cities/<slug>")
def city_detail(slug: str) -> Any:
    listing = get_service().city_listing(slug)
    return jsonify(
        {
            "data": {
                "city": _city_payload(listing.city),
                "expected_count": listing.expected_count,
                "consistent": listing.consistent,
                "businesses": [_business_payload(business) for business in listing.businesses],
            }
        }
    )


@app.get("/api/businesses/<slug>")
def business_detail(slug: str) -> Any:
    business = get_service().get_business(slug)
    return jsonify({"data": _business_payload(business)})


@app.get("/sitemap.xml")
def sitemap() -> Any:
    settings = get_settings()
    entries = get_service().sitemap_entries(settings.site_base_url)
    return Response(render_sitemap(entries), mimetype="application/xml")


def _legacy_redirect() -> Any:
    return redirect("/sussex-signs", code=301)


for _path in LEGACY_REDIRECTS:
    app.add_url_rule(_path, endpoint=f"legacy{_path.replace('-', '_').replace('/', '_')}", view_func=_legacy_redirect)


def main() -> None:
    """Cloud Run injects PORT; fall back to the configured port locally."""
    port = int(os.getenv("PORT") or get_settings().port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
