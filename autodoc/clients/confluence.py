"""Confluence REST v2 client: the page store documentation is published to.

Deep module: callers pass page data in, get ids and pages back.
Retry logic, auth and status-code mapping are handled internally.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from autodoc.exceptions import PageNotFoundError, PageStoreError, VersionConflictError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page:
    id: str
    title: str
    version: int
    content: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "version": self.version, "content": self.content}


class ConfluenceClient:
    """Client for the Confluence Cloud v2 pages API.

    Args:
        base_url: Site URL, e.g. ``https://acme.atlassian.net``.
        email: Account email for basic auth.
        api_token: API token paired with *email*.
        session: Optional pre-built ``requests.Session`` (tests inject one).
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        max_retries: int = 3,
    ):
        if not base_url:
            raise PageStoreError("CONFLUENCE_BASE_URL is not set")
        self.api_url = f"{base_url.rstrip('/')}/wiki/api/v2"
        self.session = session or requests.Session()
        self.session.auth = (email, api_token)
        self.session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        self.timeout = timeout
        self.max_retries = max_retries

    # ----- write operations ------------------------------------------------

    def create_page(
        self,
        space_id: str,
        title: str,
        content: str,
        parent_id: Optional[str] = None,
    ) -> str:
        """Create a page and return its id."""
        payload: Dict[str, Any] = {
            "spaceId": space_id,
            "status": "current",
            "title": title,
            "body": {"representation": "storage", "value": content},
        }
        if parent_id:
            payload["parentId"] = parent_id

        data = self._request("POST", "/pages", json=payload)
        page_id = str(data["id"])
        logger.info("Confluence page created", extra={"page_id": page_id, "title": title})
        return page_id

    def update_page(self, page_id: str, title: str, content: str, version: int) -> str:
        """Replace a page body. *version* is the page's current version.

        Raises:
            PageNotFoundError: page does not exist.
            VersionConflictError: *version* is stale.
        """
        payload = {
            "id": page_id,
            "status": "current",
            "title": title,
            "body": {"representation": "storage", "value": content},
            "version": {"number": version + 1},
        }
        data = self._request("PUT", f"/pages/{page_id}", json=payload, page_id=page_id, version=version)
        logger.info("Confluence page updated", extra={"page_id": page_id, "version": version + 1})
        return str(data.get("id", page_id))

    # ----- read operations -------------------------------------------------

    def get_page(self, page_id: str) -> Page:
        data = self._request("GET", f"/pages/{page_id}", params={"body-format": "storage"}, page_id=page_id)
        return Page(
            id=str(data["id"]),
            title=data.get("title", ""),
            version=int((data.get("version") or {}).get("number", 1)),
            content=((data.get("body") or {}).get("storage") or {}).get("value", ""),
        )

    def find_page_by_title(self, space_id: str, title: str) -> Optional[str]:
        """Return the id of the page titled exactly *title*, or None."""
        data = self._request(
            "GET",
            f"/spaces/{space_id}/pages",
            params={"title": title, "status": "current", "limit": 10},
        )
        for page in data.get("results", []):
            if page.get("title") == title:
                return str(page["id"])
        return None

    # ----- transport -------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        page_id: Optional[str] = None,
        version: Optional[int] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Send a request with retry on connection errors, 429 and 5xx."""
        url = f"{self.api_url}{path}"

        for attempt in range(self.max_retries):
            try:
                logger.debug("%s %s (attempt %d/%d)", method, url, attempt + 1, self.max_retries)
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
                response.raise_for_status()
                return response.json() if response.content else {}

            except requests.exceptions.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else 0

                if status == 404 and page_id:
                    raise PageNotFoundError(page_id) from exc
                if status == 409 and page_id:
                    raise VersionConflictError(page_id, version or 0) from exc
                # Don't retry client errors (except 429 rate limit)
                if 400 <= status < 500 and status != 429:
                    raise PageStoreError(f"Confluence {method} {path} failed with {status}: {exc}", status_code=status) from exc

                if attempt < self.max_retries - 1:
                    wait = (2 ** attempt) * (5 if status == 429 else 1)
                    logger.warning("Confluence HTTP %d, retrying in %ds", status, wait)
                    time.sleep(wait)
                else:
                    raise PageStoreError(
                        f"Confluence {method} {path} failed after {self.max_retries} attempts: {exc}",
                        status_code=status,
                    ) from exc

            except requests.exceptions.RequestException as exc:
                if attempt < self.max_retries - 1:
                    wait = 2 ** attempt
                    logger.warning("Confluence request failed (%s), retrying in %ds", type(exc).__name__, wait)
                    time.sleep(wait)
                else:
                    raise PageStoreError(
                        f"Confluence {method} {path} failed after {self.max_retries} attempts: {exc}"
                    ) from exc

        raise PageStoreError(f"Confluence {method} {path} was not attempted")
