from __future__ import annotations
import pathlib, json, warnings
from typing import Any, List, Iterable, Mapping

import requests
from jsonschema import validate

from .models import PointOfInterest, ToiletType

API_TIMEOUT_SEC = 10
API_PAGE_SIZE = 50
API_MAX_PAGES = 200


class ToiletLoadError(RuntimeError):
    """Payload could not be turned into toilet records."""


class ToiletLoader:
    """Loads toilet records from a JSON file or from the backend REST API"""

    def __init__(self, validate_schema: bool = True, schema_dir: str | pathlib.Path | None = None,
                 include_pending: bool = False):
        self.validate_schema = validate_schema
        self.include_pending = include_pending
        # default: the schemas directory shipped with this package
        if schema_dir is None:
            self.schema_dir = pathlib.Path(__file__).parent.parent / "schemas"
        else:
            self.schema_dir = pathlib.Path(schema_dir)

    def _load_json(self, path: str | pathlib.Path) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _validate(self, instance: Any, schema_name: str) -> None:
        if self.validate_schema:
            schema = self._load_json(self.schema_dir / schema_name)
            validate(instance=instance, schema=schema)

    # --- Public API ---------------------------------------------------

    def load_file(self, path: str | pathlib.Path) -> List[PointOfInterest]:
        """toilets.json -> list of PointOfInterest"""
        data = self._load_json(path)
        return self.from_payload(data)

    def fetch_approved(self, api_url: str, *, session: requests.Session | None = None,
                       page_size: int = API_PAGE_SIZE) -> List[PointOfInterest]:
        """
        GET {api_url}/toilets -> list of PointOfInterest

        The backend only lists approved toilets there and pages them as
        {"data": [...], "pagination": {"page", "limit", "total", "totalPages"}};
        pages are followed until totalPages. A bare list or {"toilets": [...]}
        answer is taken as the whole set.
        """
        url = api_url.rstrip("/") + "/toilets"
        getter = session.get if session is not None else requests.get
        records: List[Any] = []
        page = 1
        while True:
            resp = getter(url, params={"page": page, "limit": page_size},
                          timeout=API_TIMEOUT_SEC, headers={"Accept": "application/json"})
            resp.raise_for_status()
            payload = resp.json()
            records.extend(self._records(payload))

            pagination = payload.get("pagination") if isinstance(payload, Mapping) else None
            if not pagination:
                break
            try:
                total_pages = int(pagination.get("totalPages", page))
            except (TypeError, ValueError) as e:
                raise ToiletLoadError(f"bad pagination block: {pagination!r}") from e
            if page >= total_pages:
                break
            if page >= API_MAX_PAGES:
                warnings.warn(f"Stopped after {API_MAX_PAGES} pages of {total_pages}")
                break
            page += 1
        return self.build_points(records)

    def from_payload(self, data: Any) -> List[PointOfInterest]:
        """Accepts a bare list, {"toilets": [...]} or the API's {"data": [...]}."""
        return self.build_points(self._records(data))

    def _records(self, data: Any) -> list:
        self._validate(data, "toilets.schema.json")
        if isinstance(data, Mapping):
            if "toilets" in data:
                data = data["toilets"]
            elif "data" in data:
                data = data["data"]
            else:
                raise ToiletLoadError("payload has neither a 'toilets' nor a 'data' key")
        if not isinstance(data, list):
            raise ToiletLoadError(f"expected a list of toilets, got {type(data).__name__}")
        return data

    def build_points(self, items: Iterable[Mapping[str, Any]]) -> List[PointOfInterest]:
        points: List[PointOfInterest] = []
        seen: set[int] = set()

        for item in items:
            tid = item.get("id")
            if tid is None:
                warnings.warn(f"Toilet without id skipped: {item.get('name', '?')}")
                continue
            try:
                tid = int(tid)
            except (ValueError, TypeError) as e:
                raise ToiletLoadError(f"invalid toilet id {tid!r}") from e
            if tid in seen:
                warnings.warn(f"Duplicate toilet id {tid} skipped")
                continue

            approved = bool(item.get("approved", True))
            if not approved and not self.include_pending:
                warnings.warn(f"Toilet {tid} is not approved yet, skipped")
                continue

            try:
                category = ToiletType(item["type"])
                lat, lon = float(item["latitude"]), float(item["longitude"])
            except (KeyError, ValueError, TypeError) as e:
                raise ToiletLoadError(f"invalid toilet record {tid}: {e}") from e

            price = item.get("price")
            points.append(
                PointOfInterest(
                    id=tid,
                    latitude=lat,
                    longitude=lon,
                    category=category,
                    name=item.get("name") or "",
                    address=item.get("address") or "",
                    price=str(price) if price not in (None, "") else None,
                    description=item.get("description"),
                    approved=approved,
                    created_at=item.get("created_at"),
                )
            )
            seen.add(tid)

        return points
