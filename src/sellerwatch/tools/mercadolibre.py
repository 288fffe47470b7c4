import json
import logging

import requests

from sellerwatch.errors import SourceUnavailable
from sellerwatch.history.models import ListingRecord, ListingStatus
from sellerwatch.retry import _is_retryable, retry_on_transient

logger = logging.getLogger(__name__)

API_URL = "https://api.mercadolibre.com"
MULTIGET_BATCH = 20  # /items?ids= accepts at most 20 ids


class MercadoLibreClient:
    """Read-only client for the seller's own Mercado Livre listings.

    Token acquisition and refresh happen elsewhere; this client only sends the
    bearer token it was given.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = API_URL,
        timeout: float = 15.0,
        page_size: int = 50,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    @retry_on_transient()
    def _get(self, path: str, params: dict | None = None) -> requests.Response:
        resp = requests.get(
            f"{self.base_url}{path}", params=params, headers=self._headers(), timeout=self.timeout
        )
        if resp.status_code >= 500 or resp.status_code == 429:
            raise requests.HTTPError(response=resp)
        return resp

    def _get_json(self, path: str, params: dict | None = None):
        try:
            resp = self._get(path, params=params)
        except requests.RequestException as e:
            raise SourceUnavailable(f"GET {path} failed: {e}", transient=_is_retryable(e)) from e

        if resp.status_code == 401:
            raise SourceUnavailable("Access token expired or invalid (401)", transient=False)

        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise SourceUnavailable(f"GET {path} failed: {e}", transient=False) from e
        return resp.json()

    def _parse_item(self, body: dict) -> ListingRecord:
        return ListingRecord(
            item_id=str(body.get("id") or ""),
            title=body.get("title"),
            price=body.get("price"),
            available_stock=body.get("available_quantity") or 0,
            sold_count=body.get("sold_quantity") or 0,
            category_id=body.get("category_id"),
            status=ListingStatus.parse(body.get("status")),
            thumbnail_url=body.get("thumbnail"),
            raw=json.dumps(body, ensure_ascii=False),
        )

    def get_current_user_id(self) -> str:
        """Seller id of the account that owns the access token."""
        data = self._get_json("/users/me")
        return str(data["id"])

    def list_item_ids(self, seller_id: str) -> list[str]:
        """All item ids of a seller, following the search paging until exhausted."""
        ids: list[str] = []
        offset = 0
        while True:
            data = self._get_json(
                f"/users/{seller_id}/items/search",
                params={"limit": self.page_size, "offset": offset},
            )
            results = data.get("results") or []
            ids.extend(str(item_id) for item_id in results)
            total = (data.get("paging") or {}).get("total", len(ids))
            offset += len(results)
            if not results or offset >= total:
                return ids

    def fetch_listings(self, seller_id: str) -> list[ListingRecord]:
        """Current state of every listing of ``seller_id``.

        Raises SourceUnavailable when the marketplace cannot be reached or
        rejects the request.
        """
        ids = self.list_item_ids(seller_id)
        listings = []
        for start in range(0, len(ids), MULTIGET_BATCH):
            batch = ids[start : start + MULTIGET_BATCH]
            entries = self._get_json("/items", params={"ids": ",".join(batch)})
            for entry in entries:
                body = entry.get("body")
                if entry.get("code") != 200 or not body:
                    logger.warning(
                        "Skipping item with code %s: %s",
                        entry.get("code"),
                        (body or {}).get("message", ""),
                        extra={"seller_id": seller_id},
                    )
                    continue
                listings.append(self._parse_item(body))

        logger.info(
            "Fetched %d of %d listings", len(listings), len(ids), extra={"seller_id": seller_id}
        )
        return listings
