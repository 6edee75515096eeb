"""
SkateSwap Backend - Listing Image Codec
=========================================

What:  The single place that converts listing images between three shapes:
       what a client sends, what the `image_urls` column stores, and what the
       API returns.
Who:   ListingService on every write (encode + resolve_primary) and on every
       read (decode). Nothing else touches the raw column.
When:  Once per listing per request. No state survives between calls.

Shapes:
    Client input      None | "url" | ["url", ...]   (anything else counts as None)
    Persisted column  NULL | '["url",...]'          (compact JSON array)
                      | 'url'                        (one bare URL, older rows)
    API output        ["url", ...]                   (never null)

Client input is classified once into a tagged value:

    Absent | Single(url) | Many(urls)

and decoding a stored value produces:

    Parsed(images) | Fallback(images, diagnostic)

Fallback is what a malformed stored value turns into. The caller still gets
an image list (empty), the read still succeeds, and the diagnostic is logged
at WARNING level. Every public method here is total: none of them raise.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

from skateswap.exceptions import MalformedPersistedValue

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Tagged Values
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Absent:
    """No usable image input."""


@dataclass(frozen=True)
class Single:
    """Exactly one URL supplied as a bare string."""
    url: str


@dataclass(frozen=True)
class Many:
    """A non-empty ordered collection of URLs. Duplicates are kept."""
    urls: Tuple[str, ...]


ImageInput = Union[Absent, Single, Many]

ABSENT = Absent()


@dataclass(frozen=True)
class Parsed:
    """The stored value was read cleanly."""
    images: List[str]


@dataclass(frozen=True)
class Fallback:
    """The stored value was unreadable; `images` is the degraded result."""
    images: List[str]
    diagnostic: str


DecodeOutcome = Union[Parsed, Fallback]


@dataclass
class ImageSet:
    """
    The in-memory image state of one listing.

    `primary` need not appear in `images`: a seller may pick a primary
    image independently of the gallery.
    """
    images: List[str] = field(default_factory=list)
    primary: Optional[str] = None


def _all_strings(values: Sequence[Any]) -> bool:
    return all(isinstance(value, str) for value in values)


# ══════════════════════════════════════════════════════════════════════════
# Codec
# ══════════════════════════════════════════════════════════════════════════

class ImageSetCodec:
    """
    Stateless encoder/decoder for listing image sets.

    Example:
        >>> codec = ImageSetCodec()
        >>> codec.encode(["a.jpg", "b.jpg"])
        '["a.jpg","b.jpg"]'
        >>> codec.decode('["a.jpg","b.jpg"]')
        ['a.jpg', 'b.jpg']
        >>> codec.resolve_primary(["a.jpg", "b.jpg"], None)
        'a.jpg'
    """

    # ── Input side ────────────────────────────────────────────────────────

    def classify(self, raw: Any) -> ImageInput:
        """
        Resolve raw client input into Absent, Single or Many.

        Strings are kept verbatim (no trimming, no URL validation); a string
        that is empty or only whitespace is Absent. A sequence is Many only
        when it is non-empty and holds nothing but strings. Already-classified
        values pass through unchanged.
        """
        if isinstance(raw, (Absent, Single, Many)):
            return raw
        if isinstance(raw, str):
            return Single(raw) if raw.strip() else ABSENT
        if isinstance(raw, (list, tuple)):
            if raw and _all_strings(raw):
                return Many(tuple(raw))
            return ABSENT
        return ABSENT

    def images_of(self, image_input: ImageInput) -> List[str]:
        """Ordered URL list carried by a classified input."""
        if isinstance(image_input, Many):
            return list(image_input.urls)
        if isinstance(image_input, Single):
            return [image_input.url]
        return []

    def encode(self, raw: Any) -> Optional[str]:
        """
        Persisted form of client image input.

        Absent → None (stored as NULL). Single and Many are both stored as a
        JSON array, so a lone string is wrapped rather than stored bare.
        """
        images = self.images_of(self.classify(raw))
        if not images:
            return None
        # Compact separators: '["a.jpg","b.jpg"]'
        return json.dumps(images, separators=(",", ":"), ensure_ascii=False)

    def resolve_primary(
        self,
        images: Sequence[str],
        explicit_primary: Any = None,
    ) -> Optional[str]:
        """
        The listing's default image.

        An explicit non-empty string wins and is returned verbatim, even when
        it is not one of `images`. Otherwise the first image, otherwise None.
        """
        if isinstance(explicit_primary, str) and explicit_primary:
            return explicit_primary
        if images:
            return images[0]
        return None

    def build(self, raw_images: Any, explicit_primary: Any = None) -> ImageSet:
        """Classify client input once and produce the ImageSet to persist."""
        images = self.images_of(self.classify(raw_images))
        return ImageSet(
            images=images,
            primary=self.resolve_primary(images, explicit_primary),
        )

    # ── Output side ───────────────────────────────────────────────────────

    def decode_outcome(self, persisted: Any) -> DecodeOutcome:
        """
        Interpret a stored `image_urls` value.

        Rules, in order:
            None, "" or whitespace          → Parsed([])
            text starting with "[" (after
              leading whitespace)           → strict JSON array of strings,
                                              Fallback([]) if that fails
            any other text                  → Parsed([text])
            list/tuple of strings (driver
              already deserialized it)      → Parsed(as-is)
            anything else                   → Fallback([])
        """
        if persisted is None:
            return Parsed([])

        if isinstance(persisted, str):
            stripped = persisted.lstrip()
            if not stripped:
                return Parsed([])
            if stripped.startswith("["):
                try:
                    return Parsed(self._parse_json_array(persisted))
                except MalformedPersistedValue as exc:
                    return Fallback([], exc.message)
            return Parsed([persisted])

        if isinstance(persisted, (list, tuple)):
            if _all_strings(persisted):
                return Parsed(list(persisted))
            return Fallback([], "Malformed image_urls value: structured value holds non-string entries")

        return Fallback(
            [],
            f"Malformed image_urls value: unsupported type {type(persisted).__name__}",
        )

    def decode(self, persisted: Any, listing_id: Optional[int] = None) -> List[str]:
        """
        Ordered image list for an API response. Never None, never raises.

        `listing_id` only labels the warning logged when the stored value
        has to be discarded.
        """
        outcome = self.decode_outcome(persisted)
        if isinstance(outcome, Fallback):
            logger.warning(
                "Listing %s: discarding unreadable image_urls (%s)",
                listing_id if listing_id is not None else "?",
                outcome.diagnostic,
            )
        return list(outcome.images)

    def _parse_json_array(self, raw: str) -> List[str]:
        """
        Strict parse of a JSON array of strings.

        Raises:
            MalformedPersistedValue: invalid JSON, a non-array value, or an
                array holding anything other than strings.
        """
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedPersistedValue(raw, f"invalid JSON ({exc.msg})") from exc
        except RecursionError as exc:
            raise MalformedPersistedValue(raw, "JSON nested too deeply") from exc

        if not isinstance(value, list):
            raise MalformedPersistedValue(raw, "JSON value is not an array")
        if not _all_strings(value):
            raise MalformedPersistedValue(raw, "JSON array holds non-string entries")
        return value


# ── Singleton Instance ────────────────────────────────────────────────────
# Stateless; one shared instance is enough
image_set_codec = ImageSetCodec()
