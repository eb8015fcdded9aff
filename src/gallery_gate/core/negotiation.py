"""Accept header negotiation.

Parses the Accept header into media ranges and reduces it to the one
decision the responder needs: does the caller want a document or a
machine-readable body.
"""

from dataclasses import dataclass
from enum import Enum

DOCUMENT_SUBTYPES = frozenset({"html", "xhtml+xml"})


class NegotiatedFormat(str, Enum):
    STRUCTURED = "structured"
    DOCUMENT = "document"


@dataclass(frozen=True)
class MediaRange:
    """One entry of an Accept header, e.g. text/html;q=0.9."""

    type: str
    subtype: str
    quality: float = 1.0

    @property
    def is_document(self) -> bool:
        return self.subtype in DOCUMENT_SUBTYPES and self.quality > 0


def parse_accept(header: str | None) -> list[MediaRange]:
    """Parse an Accept header into media ranges.

    Malformed entries are skipped. A missing or malformed q value
    counts as 1.

    Examples:
        "text/html,application/json;q=0.5"
            -> [MediaRange("text", "html", 1.0), MediaRange("application", "json", 0.5)]
        "" -> []
    """
    ranges: list[MediaRange] = []
    for entry in (header or "").split(","):
        media, *params = (piece.strip() for piece in entry.split(";"))
        main, sep, sub = media.lower().partition("/")
        if not sep or not main or not sub:
            continue

        quality = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value.strip())
                except ValueError:
                    quality = 1.0

        ranges.append(MediaRange(type=main, subtype=sub, quality=quality))
    return ranges


def negotiate(header: str | None) -> NegotiatedFormat:
    """Classify a caller by its Accept header.

    Any acceptable HTML media range makes the caller a document client;
    everything else, including a missing header, is treated as an API client.
    """
    if any(media.is_document for media in parse_accept(header)):
        return NegotiatedFormat.DOCUMENT
    return NegotiatedFormat.STRUCTURED
