# campus_market/services/item_client.py
from typing import Dict, Iterable

import requests

from campus_market.utils.retry import http_retry
from campus_market.utils.settings import CATALOG_SERVICE_URL
from campus_market.utils.logging import get_logger

logger = get_logger(__name__)


def _normalize(raw: dict) -> dict:
    photos = raw.get("photos") or []
    return {
        "id": int(raw["id"]),
        "title": raw["title"],
        "price": raw["price"],
        "approval_status": raw.get("approval_status"),
        "availability_status": raw.get("availability_status"),
        "owner_id": raw.get("owner_id"),
        "image": raw.get("image") or (photos[0] if photos else None),
    }


class ItemClient:
    """
    Read-only view of the catalog service.
    Price, approval status, availability and owner of each item.
    """

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or CATALOG_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def lookup(self, item_id: int) -> dict | None:
        url = f"{self.base_url}/items/{item_id}"
        logger.info(f"ItemClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return _normalize(resp.json())

    @http_retry()
    def lookup_many(self, item_ids: Iterable[int]) -> Dict[int, dict]:
        """
        One request for the whole cart so every line is priced from the same
        catalog state. Items the catalog does not know are simply absent.
        """
        ids = sorted({int(i) for i in item_ids})
        if not ids:
            return {}

        url = f"{self.base_url}/items"
        logger.info(f"ItemClient GET {url} ids={ids}")

        resp = requests.get(
            url,
            params={"ids": ",".join(str(i) for i in ids)},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return {record["id"]: record for record in map(_normalize, resp.json())}
