"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type header sent with a file.

=============================================================================
HOW THE LOOKUP WORKS
=============================================================================

The extension is everything after the LAST dot in the file name:

    ┌────────────────────────────────────────────────────────────────────┐
    │   file name            extension     Content-Type                  │
    ├────────────────────────────────────────────────────────────────────┤
    │   index.html           html          text/html; charset=utf-8      │
    │   report.tar.gz        gz            application/x-gtar            │
    │   notes.md             md            text/plain; charset=utf-8     │
    │   README               (none)        application/octet-stream      │
    │   photo.PNG            PNG           application/octet-stream      │
    └────────────────────────────────────────────────────────────────────┘

The match is exact and CASE-SENSITIVE: "PNG" is not "png". Anything that
is not in the table is served as application/octet-stream, which makes
browsers download the file instead of guessing.

=============================================================================
WHY A READ-ONLY TABLE?
=============================================================================

Every worker process reads this table and nobody ever writes it. Wrapping
it in MappingProxyType makes that a property of the object rather than a
convention: an accidental assignment raises TypeError.

=============================================================================
"""

from pathlib import PurePosixPath
from types import MappingProxyType


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are extensions WITHOUT the dot. Text types carry an explicit charset.
#
# =============================================================================

MIME_TYPES = MappingProxyType({
    # -------------------------------------------------------------------------
    # MARKUP / TEXT
    # -------------------------------------------------------------------------
    "xml": "application/xml; charset=utf-8",
    "xhtml": "application/xhtml+xml; charset=utf-8",
    "html": "text/html; charset=utf-8",
    "htm": "text/html; charset=utf-8",
    "css": "text/css; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
    "md": "text/plain; charset=utf-8",
    "c": "text/plain; charset=utf-8",
    "h": "text/plain; charset=utf-8",

    # -------------------------------------------------------------------------
    # ARCHIVES / DOCUMENTS
    # -------------------------------------------------------------------------
    "gz": "application/x-gtar",
    "tar": "application/tar",
    "pdf": "application/x-pdf",
    "iso": "application/x-iso9660-image",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    "png": "image/png",
    "gif": "image/gif",
    "jpeg": "image/jpg",
    "jpg": "image/jpg",
    "webp": "image/webp",
    "svg": "image/svg+xml; charset=utf-8",

    # -------------------------------------------------------------------------
    # AUDIO / VIDEO
    # -------------------------------------------------------------------------
    "flac": "audio/flac",
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "ogv": "video/ogg",
    "webm": "video/webm",
})

# Default for unknown or missing extensions
DEFAULT_MIME_TYPE = "application/octet-stream"

# Directory listings and compiled-in error bodies are always HTML
HTML_MIME_TYPE = MIME_TYPES["html"]


def get_extension(path: str) -> str | None:
    """
    Return the text after the last dot of the file name, or None.

    Only the final path component is inspected, so a dot in a directory
    name ("/v1.2/README") does not count as an extension.

    Examples:
        >>> get_extension("report.tar.gz")
        'gz'
        >>> get_extension("/v1.2/README") is None
        True
    """
    name = PurePosixPath(path).name
    if "." not in name:
        return None
    return name.rsplit(".", 1)[1]


def get_mime_type(path: str) -> str:
    """
    Get the Content-Type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css; charset=utf-8'

        >>> get_mime_type("/music/track.flac")
        'audio/flac'

        >>> get_mime_type("README")
        'application/octet-stream'
    """
    extension = get_extension(path)
    if extension is None:
        return DEFAULT_MIME_TYPE
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
