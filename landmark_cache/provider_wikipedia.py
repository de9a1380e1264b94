# provider_wikipedia.py
# Wikipedia based provider: geosearch around a point -> page details -> landmark records.

import os
import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from landmark_cache import __version__
from landmark_cache.models import (
    GeoSearchPage,
    GeoSearchResponse,
    LandmarkCreate,
    PageDetail,
    PageDetailResponse,
)

API_URL = os.getenv("WIKIPEDIA_API_URL", "https://en.wikipedia.org/w/api.php")
HTTP_TIMEOUT = float(os.getenv("WIKIPEDIA_HTTP_TIMEOUT", "10"))
USER_AGENT = os.getenv("WIKIPEDIA_USER_AGENT", f"landmark-cache/{__version__}")

GEOSEARCH_LIMIT = 50
DETAIL_FETCH_CAP = 20
DESCRIPTION_MAX_CHARS = 500
THUMBNAIL_SIZE = 300

# first bucket whose keyword appears in the lowercased title wins
CATEGORY_KEYWORDS = (
    ("religious", ("church", "cathedral", "temple", "mosque", "synagogue")),
    ("cultural", ("museum", "gallery", "theater", "theatre", "opera", "concert")),
    ("natural", ("park", "garden", "forest", "lake", "mountain", "river")),
    ("historical", ("castle", "fort", "palace", "historic", "monument", "memorial")),
    ("educational", ("university", "college", "school", "library")),
)
DEFAULT_CATEGORY = "landmark"

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """A Wikipedia request failed or returned something we cannot decode."""


def categorize_from_title(title: str) -> str:
    t = title.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in t for k in keywords):
            return category
    return DEFAULT_CATEGORY


def make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        http2=True,
        timeout=HTTP_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
    )


async def _get_json(client: httpx.AsyncClient, url: str, params: dict) -> Any:
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise UpstreamError(f"{type(e).__name__}: {e}") from e
    # the API reports parameter problems in-band with a 200
    if isinstance(data, dict) and "error" in data:
        err = data["error"] if isinstance(data["error"], dict) else {}
        raise UpstreamError(f"api error {err.get('code')}: {err.get('info')}")
    return data


class WikipediaProvider:
    def __init__(self, client: httpx.AsyncClient, api_url: str = API_URL):
        self.client = client
        self.api_url = api_url

    async def geosearch(self, lat: float, lon: float, radius_m: float) -> List[GeoSearchPage]:
        """Pages near (lat, lon) in the service's distance order.

        Raises UpstreamError when the request or the envelope fails. Single
        entries missing pageid/lat/lon are dropped with a warning.
        """
        data = await _get_json(
            self.client,
            self.api_url,
            {
                "action": "query",
                "list": "geosearch",
                "gscoord": f"{lat}|{lon}",
                "gsradius": str(int(radius_m)),
                "gslimit": str(GEOSEARCH_LIMIT),
                "format": "json",
                "origin": "*",
            },
        )
        try:
            envelope = GeoSearchResponse.model_validate(data or {})
        except ValidationError as e:
            raise UpstreamError(f"malformed geosearch response: {e}") from e

        pages: List[GeoSearchPage] = []
        for raw in envelope.query.geosearch:
            try:
                pages.append(GeoSearchPage.model_validate(raw))
            except ValidationError as e:
                logger.warning("rejecting geosearch entry %r: %s", raw.get("pageid"), e.errors()[0]["msg"])
        return pages

    async def page_details(self, page_id: int) -> Optional[PageDetail]:
        """Summary, thumbnail and canonical URL for one page.

        Returns None when the page is reported missing. Raises UpstreamError
        on request failure or an undecodable page.
        """
        data = await _get_json(
            self.client,
            self.api_url,
            {
                "action": "query",
                "pageids": str(page_id),
                "prop": "extracts|pageimages|info",
                "exintro": "true",
                "explaintext": "true",
                "exsectionformat": "plain",
                "piprop": "thumbnail",
                "pithumbsize": str(THUMBNAIL_SIZE),
                "inprop": "url",
                "format": "json",
                "origin": "*",
            },
        )
        try:
            envelope = PageDetailResponse.model_validate(data or {})
        except ValidationError as e:
            raise UpstreamError(f"malformed detail response: {e}") from e

        raw = next(iter(envelope.query.pages.values()), None)
        if raw is None or "missing" in raw:
            return None
        try:
            return PageDetail.model_validate(raw)
        except ValidationError as e:
            raise UpstreamError(f"malformed page {page_id}: {e}") from e

    async def _landmark_for(self, page: GeoSearchPage) -> Optional[LandmarkCreate]:
        try:
            detail = await self.page_details(page.pageid)
        except UpstreamError as e:
            logger.warning("skipping page %s (%s): %s", page.pageid, page.title, e)
            return None
        except Exception:
            # one bad page must not abort the gather over its siblings
            logger.exception("skipping page %s (%s): unexpected error", page.pageid, page.title)
            return None
        if detail is None:
            logger.warning("skipping page %s (%s): missing upstream", page.pageid, page.title)
            return None
        try:
            return build_landmark(page, detail)
        except ValidationError as e:
            logger.warning("skipping page %s (%s): %s", page.pageid, page.title, e.errors()[0]["msg"])
            return None

    async def search_landmarks_by_coordinates(
        self, lat: float, lon: float, radius_m: float = 10000
    ) -> List[LandmarkCreate]:
        """Geosearch + detail fan-out. Never raises: upstream failure -> []."""
        try:
            pages = await self.geosearch(lat, lon, radius_m)
        except UpstreamError as e:
            logger.error("wikipedia geosearch failed at %s,%s r=%sm: %s", lat, lon, radius_m, e)
            return []

        candidates = pages[:DETAIL_FETCH_CAP]
        logger.debug("geosearch returned %d pages, fetching %d", len(pages), len(candidates))
        results = await asyncio.gather(*(self._landmark_for(p) for p in candidates))
        return [lm for lm in results if lm is not None]


def build_landmark(page: GeoSearchPage, detail: PageDetail) -> LandmarkCreate:
    extract = detail.extract or ""
    return LandmarkCreate(
        external_id=str(page.pageid),
        title=detail.title,
        description=extract[:DESCRIPTION_MAX_CHARS],
        extract=extract,
        latitude=page.lat,
        longitude=page.lon,
        image_url=detail.thumbnail.source if detail.thumbnail else None,
        category=categorize_from_title(detail.title),
        source_url=detail.fullurl,
    )
