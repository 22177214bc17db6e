"""MetadataProbe interface for media metadata extraction."""

from pathlib import Path
from typing import Protocol

from rawpipe.probe.models import MediaKind, MediaMetadata


class MetadataProbe(Protocol):
    """Protocol for metadata probe implementations.

    Readers depend on this protocol so tests can hand them canned
    metadata instead of running ffprobe.
    """

    def probe(
        self,
        path: Path | str,
        kind: MediaKind,
        *,
        ignore_stream_errors: bool = True,
    ) -> MediaMetadata:
        """Extract metadata from a media file.

        Raises:
            ProbeOutputUnparseable: If the prober output cannot be parsed.
            MetadataParseFailure: If the stream of ``kind`` is missing or
                malformed and ``ignore_stream_errors`` is False.
        """
        ...
