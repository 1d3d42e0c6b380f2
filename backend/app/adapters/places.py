"""Place photo resolvers: Google Places (httpx) and a deterministic fixture."""

import hashlib
import logging
import re
from typing import Any
from urllib.parse import urlencode

import httpx

from backend.app.config import settings
from backend.app.enrichment.photos import PhotoMatch, PhotoResolutionContext

logger = logging.getLogger(__name__)


class GooglePlacesPhotoResolver:
    """Photo lookup against the Google Places web service.

    Candidates come from Place Details (when a place id hint is given) and
    then a Find Place text search. The first candidate whose photo URL and
    place id are both unclaimed is committed through ``ctx.claim``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        max_width: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            api_key: Google Maps key; read from settings when omitted
            base_url: Places API base URL
            max_width: Requested photo width in pixels
            client: Optional httpx client (for testing with mocks)
        """
        if api_key is None and settings.google_maps_api_key is not None:
            api_key = settings.google_maps_api_key.get_secret_value()
        self.api_key = api_key or None
        self.base_url = (base_url or settings.places_base_url).rstrip("/")
        self.max_width = max_width or settings.photo_max_width
        self.client = client

    def photo_url(self, photo_reference: str) -> str:
        params = {
            "maxwidth": self.max_width,
            "photo_reference": photo_reference,
            "key": self.api_key or "",
        }
        return f"{self.base_url}/photo?{urlencode(params)}"

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict[str, str]) -> Any:
        response = await client.get(
            f"{self.base_url}/{path}", params={**params, "key": self.api_key or ""}
        )
        response.raise_for_status()
        return response.json()

    async def _details(self, client: httpx.AsyncClient, place_id: str) -> list[dict[str, Any]]:
        try:
            data = await self._get(
                client, "details/json", {"place_id": place_id, "fields": "place_id,photos"}
            )
        except httpx.HTTPError as e:
            logger.warning(f"Place details lookup failed for {place_id}: {e}")
            return []
        result = data.get("result")
        return [result] if isinstance(result, dict) else []

    async def _search(self, client: httpx.AsyncClient, query: str) -> list[dict[str, Any]]:
        data = await self._get(
            client,
            "findplacefromtext/json",
            {"input": query, "inputtype": "textquery", "fields": "place_id,photos"},
        )
        candidates = data.get("candidates") or []
        return [c for c in candidates if isinstance(c, dict)]

    async def find_photo(
        self,
        query: str,
        ctx: PhotoResolutionContext,
        *,
        place_id: str | None = None,
    ) -> PhotoMatch | None:
        """Find and claim an unused photo for ``query``.

        Raises:
            httpx.HTTPError: On network or HTTP errors from the text search
        """
        if not self.api_key:
            logger.info("No Google Maps API key configured, skipping photo lookup")
            return None

        close_client = False
        client = self.client
        if client is None:
            client = httpx.AsyncClient(timeout=settings.photo_timeout_ms / 1000)
            close_client = True

        try:
            if place_id and not ctx.is_claimed(place_id=place_id):
                match = await self._claim_first(await self._details(client, place_id), ctx)
                if match is not None:
                    return match
            return await self._claim_first(await self._search(client, query), ctx)
        finally:
            if close_client:
                await client.aclose()

    async def _claim_first(
        self, candidates: list[dict[str, Any]], ctx: PhotoResolutionContext
    ) -> PhotoMatch | None:
        for candidate in candidates:
            candidate_id = candidate.get("place_id")
            photos = candidate.get("photos") or []
            if not photos or not photos[0].get("photo_reference"):
                continue
            url = self.photo_url(photos[0]["photo_reference"])
            if ctx.is_claimed(url, candidate_id):
                continue
            if await ctx.claim(url, candidate_id):
                return PhotoMatch(url=url, place_id=candidate_id)
        return None


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "place"


class FixturePhotoResolver:
    """Deterministic in-memory resolver for development and tests.

    Queries found in ``catalog`` return their listed candidates in order.
    Other queries get ``candidates_per_query`` synthesized candidates derived
    from the query text, or nothing when ``synthesize`` is off.
    """

    def __init__(
        self,
        catalog: dict[str, list[PhotoMatch]] | None = None,
        synthesize: bool = True,
        candidates_per_query: int = 3,
        base_url: str = "https://photos.example.test",
    ) -> None:
        self.catalog = catalog or {}
        self.synthesize = synthesize
        self.candidates_per_query = candidates_per_query
        self.base_url = base_url
        self.calls: list[str] = []

    def candidates(self, query: str) -> list[PhotoMatch]:
        if query in self.catalog:
            return list(self.catalog[query])
        if not self.synthesize:
            return []
        slug = _slug(query)
        digest = hashlib.sha1(query.encode("utf-8")).hexdigest()[:10]
        return [
            PhotoMatch(url=f"{self.base_url}/{slug}/{i}.jpg", place_id=f"fx_{digest}_{i}")
            for i in range(self.candidates_per_query)
        ]

    async def find_photo(
        self,
        query: str,
        ctx: PhotoResolutionContext,
        *,
        place_id: str | None = None,
    ) -> PhotoMatch | None:
        self.calls.append(query)
        for candidate in self.candidates(query):
            if await ctx.claim(candidate.url, candidate.place_id):
                return candidate
        return None
