"""
Genomic Data Commons query client.

High level (tcgaid perspective)
-------------------------------
Translation code only needs one capability from the remote catalog:
"search cases/files by filter, return nested records". `QueryService`
names that capability and `GDCQueryService` implements it on top of the
GDC REST API.

Key behaviors
-------------
- POSTs a JSON search body (filters, fields, paging) to ``/cases`` or
  ``/files``; ``legacy=True`` targets the ``/legacy/`` archive instead.
- Follows ``data.pagination`` until every hit has been collected.
- Uses small retry/backoff per page for network errors, 5xx and 429;
  other 4xx answers and any final failure raise `RemoteServiceError`
  chained to the underlying cause.
- Returns the raw ``hits`` (dicts keyed by their own ``id``); reshaping
  them is the translator's job.

Environment
-----------
GDC_BASE_URL  : Optional base URL override (default "https://api.gdc.cancer.gov")
GDC_PAGE_SIZE : Hits requested per page (default 1000)
GDC_TIMEOUT   : Per-request timeout in seconds (default 30)
"""

from __future__ import annotations

import abc
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional, Sequence

import requests

from .errors import RemoteServiceError

LOGGER = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# Module configuration
# ------------------------------------------------------------------------------

_GDC_BASE = os.getenv("GDC_BASE_URL", "https://api.gdc.cancer.gov").rstrip("/")
_PAGE_SIZE = int(os.getenv("GDC_PAGE_SIZE", "1000"))
_TIMEOUT = float(os.getenv("GDC_TIMEOUT", "30"))
_ATTEMPTS = 4

ENTITIES = frozenset({"cases", "files"})


# ------------------------------------------------------------------------------
# Filter helpers
# ------------------------------------------------------------------------------


def in_filter(field: str, values: Sequence[str]) -> Dict[str, Any]:
    """
    GDC filter selecting records whose ``field`` is any of ``values``.

    >>> in_filter("case_id", ["ae55b2d3-62a1-419e-9f9a-5ddfac356db4"])
    {'op': 'in', 'content': {'field': 'case_id', 'value': ['ae55b2d3-62a1-419e-9f9a-5ddfac356db4']}}
    """
    return {"op": "in", "content": {"field": field, "value": list(values)}}


# ------------------------------------------------------------------------------
# Abstract capability
# ------------------------------------------------------------------------------


class QueryService(metaclass=abc.ABCMeta):
    """Search the remote catalog and hand back nested records."""

    @abc.abstractmethod
    def query(
        self,
        entity: str,
        filters: Dict[str, Any],
        fields: Sequence[str],
        legacy: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Return every record of ``entity`` ('cases' or 'files') matching
        ``filters``, projected onto ``fields``. Each record carries its
        own UUID under ``id``.
        """
        pass


# ------------------------------------------------------------------------------
# GDC REST implementation
# ------------------------------------------------------------------------------


def _sleep_backoff(i: int) -> None:
    """
    Sleep using a small exponential backoff.
    Sequence ~ 0.25s, 0.5s, 1s, 2s.
    """
    time.sleep(0.25 * (2**i))


class GDCQueryService(QueryService):
    """
    `QueryService` backed by the GDC REST API.

    Parameters
    ----------
    base_url : str, optional
        API root, defaults to ``GDC_BASE_URL``.
    page_size : int, optional
        Hits per page, defaults to ``GDC_PAGE_SIZE``.
    timeout : float, optional
        Per-request timeout in seconds, defaults to ``GDC_TIMEOUT``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or _GDC_BASE).rstrip("/")
        self.page_size = page_size or _PAGE_SIZE
        self.timeout = timeout or _TIMEOUT

    def endpoint_url(self, entity: str, legacy: bool = False) -> str:
        if entity not in ENTITIES:
            raise ValueError(f"Unknown GDC entity {entity!r}; expected one of {sorted(ENTITIES)}")
        if legacy:
            return f"{self.base_url}/legacy/{entity}"
        return f"{self.base_url}/{entity}"

    def query(
        self,
        entity: str,
        filters: Dict[str, Any],
        fields: Sequence[str],
        legacy: bool = False,
    ) -> List[Dict[str, Any]]:
        url = self.endpoint_url(entity, legacy)
        hits: List[Dict[str, Any]] = []
        offset = 0
        while True:
            body = {
                "filters": filters,
                "fields": ",".join(fields),
                "format": "JSON",
                "size": self.page_size,
                "from": offset,
            }
            page_hits, total = self._fetch_page(url, body)
            hits.extend(page_hits)
            LOGGER.debug("Fetched %d/%d hit(s) from %s", len(hits), total, url)
            offset += len(page_hits)
            if not page_hits or offset >= total:
                break
        return hits

    def _fetch_page(self, url: str, body: Dict[str, Any]) -> tuple[List[Dict[str, Any]], int]:
        payload = self._post_json(url, body)
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get("hits"), list):
            raise RemoteServiceError(f"Unexpected GDC payload from {url}: no 'data.hits' list")
        pagination = data.get("pagination") or {}
        total = pagination.get("total", len(data["hits"]))
        return data["hits"], int(total)

    def _post_json(self, url: str, body: Dict[str, Any]) -> dict:
        """
        POST a search body with simple retry/backoff.

        Retries a few times on network/5xx/429/JSON decode problems and raises
        RemoteServiceError if all attempts fail. Other 4xx answers (bad field,
        auth) will not change on retry and are raised at once.
        """
        last_exc: Exception | None = None
        for i in range(_ATTEMPTS):
            try:
                resp = requests.post(url, json=body, timeout=self.timeout)
                resp.raise_for_status()
                return resp.json()
            except requests.HTTPError as e:
                status = getattr(e.response, "status_code", None)
                if status is not None and 400 <= status < 500 and status != 429:
                    raise RemoteServiceError(f"GDC rejected POST {url} (HTTP {status}): {e}") from e
                last_exc = e
                LOGGER.warning("GDC request to %s failed (attempt %d/%d): %s", url, i + 1, _ATTEMPTS, e)
                if i + 1 < _ATTEMPTS:
                    _sleep_backoff(i)
            except (requests.RequestException, json.JSONDecodeError, ValueError) as e:
                last_exc = e
                LOGGER.warning("GDC request to %s failed (attempt %d/%d): %s", url, i + 1, _ATTEMPTS, e)
                if i + 1 < _ATTEMPTS:
                    _sleep_backoff(i)
        assert last_exc is not None
        raise RemoteServiceError(f"Failed POST {url}: {last_exc}") from last_exc
