"""Photo resolution with run-scoped image URL and place id deduplication.

Per generation run one ``PhotoResolutionContext`` is created and passed into
every resolution call. Lookups for independent places run concurrently, so the
two dedup sets are only touched through ``claim``, which checks and commits
under a lock.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from rapidfuzz import fuzz

from backend.app.enrichment.dedup import place_name_key
from backend.app.models.itinerary import Day, ItineraryDocument, Place
from backend.app.models.trip import SavedPlace
from backend.app.utils.metrics import pipeline_metrics

logger = logging.getLogger(__name__)


@dataclass
class PhotoMatch:
    """A photo bound to a place."""

    url: str
    place_id: str | None = None


@dataclass
class PhotoResolutionContext:
    """Run-scoped dedup state shared by all photo lookups of one generation."""

    used_image_urls: set[str] = field(default_factory=set)
    used_place_ids: set[str] = field(default_factory=set)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def is_claimed(self, url: str | None = None, place_id: str | None = None) -> bool:
        """Advisory check; use ``claim`` to actually bind a photo."""
        if url and url in self.used_image_urls:
            return True
        return bool(place_id and place_id in self.used_place_ids)

    async def claim(self, url: str, place_id: str | None = None) -> bool:
        """Atomically bind ``url`` (and ``place_id``) to the caller.

        Returns False, without committing anything, if either is already taken.
        ``None`` place ids never conflict.
        """
        async with self._lock:
            if url in self.used_image_urls:
                return False
            if place_id and place_id in self.used_place_ids:
                return False
            self.used_image_urls.add(url)
            if place_id:
                self.used_place_ids.add(place_id)
            return True

    async def claim_place_id(self, place_id: str) -> bool:
        """Bind a place id that comes without a photo."""
        async with self._lock:
            if place_id in self.used_place_ids:
                return False
            self.used_place_ids.add(place_id)
            return True


class PhotoResolver(Protocol):
    """External place-photo lookup honoring the dedup contract.

    Implementations must commit any photo they return through ``ctx.claim``
    and return ``None`` when no unclaimed photo is available.
    """

    async def find_photo(
        self,
        query: str,
        ctx: PhotoResolutionContext,
        *,
        place_id: str | None = None,
    ) -> PhotoMatch | None:
        ...


def match_saved_place(
    name: str, saved_places: list[SavedPlace], min_score: float = 85.0
) -> SavedPlace | None:
    """Fuzzy-match an activity name against the trip's saved places.

    Names match when one contains the other or their ``fuzz.ratio`` score
    (0-100) reaches ``min_score``.
    """
    key = place_name_key(name)
    if not key:
        return None

    for saved in saved_places:
        saved_key = place_name_key(saved.name)
        if not saved_key:
            continue
        if saved_key in key or key in saved_key:
            return saved
        if fuzz.ratio(key, saved_key) >= min_score:
            return saved
    return None


async def _safe_find(
    resolver: PhotoResolver,
    query: str,
    ctx: PhotoResolutionContext,
    place_id: str | None = None,
) -> PhotoMatch | None:
    try:
        match = await resolver.find_photo(query, ctx, place_id=place_id)
    except Exception as e:
        logger.warning(
            f"Photo resolver failed for {query!r}: {type(e).__name__}",
            extra={"structured": {"query": query, "error": type(e).__name__}},
        )
        pipeline_metrics.inc_photo("resolver", "error")
        return None

    pipeline_metrics.inc_photo("resolver", "bound" if match else "none")
    return match


@dataclass
class PhotoResolutionService:
    """Resolves place and hero photos for one destination."""

    resolver: PhotoResolver
    city: str
    saved_places: list[SavedPlace] = field(default_factory=list)
    fanout_cap: int = 4
    match_score: float = 85.0

    async def _keep_existing(self, place: Place, ctx: PhotoResolutionContext) -> Place:
        """Keep a photo the place already carries, or drop it if another owns it."""
        url = place.image_url or (place.photos[0] if place.photos else None)
        if url and await ctx.claim(url, place.place_id):
            pipeline_metrics.inc_photo("existing", "bound")
            return place

        pipeline_metrics.inc_photo("existing", "duplicate")
        return place.model_copy(update={"image_url": None, "photos": [], "place_id": None})

    async def _resolve_place(
        self, place: Place, ctx: PhotoResolutionContext, semaphore: asyncio.Semaphore
    ) -> Place:
        saved = match_saved_place(place.name, self.saved_places, self.match_score)
        if saved is not None and saved.photo_url:
            if await ctx.claim(saved.photo_url, saved.place_id):
                pipeline_metrics.inc_photo("saved_place", "bound")
                return place.model_copy(
                    update={
                        "image_url": saved.photo_url,
                        "photos": [saved.photo_url],
                        "place_id": saved.place_id,
                    }
                )
            pipeline_metrics.inc_photo("saved_place", "duplicate")

        hint = saved.place_id if saved is not None else place.place_id
        async with semaphore:
            match = await _safe_find(self.resolver, f"{place.name} in {self.city}", ctx, hint)

        if match is None:
            if place.place_id and not await ctx.claim_place_id(place.place_id):
                return place.model_copy(update={"place_id": None})
            return place
        return place.model_copy(
            update={"image_url": match.url, "photos": [match.url], "place_id": match.place_id}
        )

    async def resolve_day_places(self, day: Day, ctx: PhotoResolutionContext) -> Day:
        """Bind a unique photo to every place of ``day``.

        Existing photos are claimed first, in slot order; the remaining places
        are resolved concurrently.
        """
        slots = [[place for place in slot.places] for slot in day.slots]

        pending: list[tuple[int, int]] = []
        for s, places in enumerate(slots):
            for p, place in enumerate(places):
                if place.has_image:
                    places[p] = await self._keep_existing(place, ctx)
                if not places[p].has_image:
                    pending.append((s, p))

        semaphore = asyncio.Semaphore(max(1, self.fanout_cap))
        resolved = await asyncio.gather(
            *(self._resolve_place(slots[s][p], ctx, semaphore) for s, p in pending)
        )
        for (s, p), place in zip(pending, resolved, strict=True):
            slots[s][p] = place

        return day.model_copy(
            update={
                "slots": [
                    slot.model_copy(update={"places": places})
                    for slot, places in zip(day.slots, slots, strict=True)
                ]
            }
        )

    async def resolve_day_hero(self, day: Day, ctx: PhotoResolutionContext) -> Day:
        """Bind a unique hero photo to ``day`` if it has none."""
        if day.photos:
            if await ctx.claim(day.photos[0]):
                return day
            day = day.model_copy(update={"photos": []})

        anchor = day.title or day.area_cluster or day.theme
        match = await _safe_find(self.resolver, f"{anchor} {self.city}".strip(), ctx)
        if match is None:
            return day
        return day.model_copy(update={"photos": [match.url]})

    async def backfill_missing(
        self, doc: ItineraryDocument, max_updates: int
    ) -> tuple[ItineraryDocument, int]:
        """Resolve photos for places that still lack one, up to ``max_updates``.

        Photos already present in the document are registered first so the
        backfill never reuses them.
        """
        ctx = PhotoResolutionContext()
        for day in doc.days:
            if day.photos:
                await ctx.claim(day.photos[0])
            for place in day.iter_places():
                url = place.image_url or (place.photos[0] if place.photos else None)
                if url:
                    await ctx.claim(url, place.place_id)

        updated = 0
        semaphore = asyncio.Semaphore(max(1, self.fanout_cap))
        days = []
        for day in doc.days:
            slots = []
            for slot in day.slots:
                places = []
                for place in slot.places:
                    if not place.has_image and updated < max_updates:
                        place = await self._resolve_place(place, ctx, semaphore)
                        if place.has_image:
                            updated += 1
                    places.append(place)
                slots.append(slot.model_copy(update={"places": places}))
            days.append(day.model_copy(update={"slots": slots}))

        return doc.model_copy(update={"days": days}), updated
