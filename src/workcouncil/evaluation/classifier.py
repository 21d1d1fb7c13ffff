"""Content classification for evaluator routing.

Maps a submission URL onto a coarse content type using fixed host and
file-extension tables. The classifier never fetches the URL: interpreting
the content is left to whichever evaluator backend can natively reason
about it.
"""

from enum import StrEnum
from pathlib import PurePosixPath

from workcouncil.core.urls import host_matches, hostname_of, split_url


class ContentType(StrEnum):
    """Coarse content types used to route submissions to evaluators."""

    CODE_REPOSITORY = "code-repository"
    SOCIAL_POST = "social-post"
    VIDEO = "video"
    IMAGE = "image"
    PLAIN_TEXT = "plain-text"
    UNKNOWN = "unknown"


# Host suffix -> content type. Subdomains match their parent entry.
HOST_TABLE: dict[str, ContentType] = {
    "github.com": ContentType.CODE_REPOSITORY,
    "gitlab.com": ContentType.CODE_REPOSITORY,
    "bitbucket.org": ContentType.CODE_REPOSITORY,
    "twitter.com": ContentType.SOCIAL_POST,
    "x.com": ContentType.SOCIAL_POST,
    "warpcast.com": ContentType.SOCIAL_POST,
    "youtube.com": ContentType.VIDEO,
    "youtu.be": ContentType.VIDEO,
    "vimeo.com": ContentType.VIDEO,
    "loom.com": ContentType.VIDEO,
}

EXTENSION_TABLE: dict[str, ContentType] = {
    ".jpg": ContentType.IMAGE,
    ".jpeg": ContentType.IMAGE,
    ".png": ContentType.IMAGE,
    ".gif": ContentType.IMAGE,
    ".webp": ContentType.IMAGE,
    ".svg": ContentType.IMAGE,
    ".mp4": ContentType.VIDEO,
    ".mov": ContentType.VIDEO,
    ".webm": ContentType.VIDEO,
    ".txt": ContentType.PLAIN_TEXT,
    ".md": ContentType.PLAIN_TEXT,
    ".rst": ContentType.PLAIN_TEXT,
}


def classify(url: str, notes: str = "") -> ContentType:
    """Classify a submission URL.

    Total and deterministic: the same URL always yields the same type, and
    any input (including an unparsable URL) yields a value. ``notes`` is
    accepted for interface symmetry with validation but never consulted.

    Args:
        url: Submission URL (untrusted).
        notes: Submission notes (unused).

    Returns:
        The matched ContentType, or ContentType.UNKNOWN.
    """
    parts = split_url(url)
    if parts is None:
        return ContentType.UNKNOWN

    hostname = hostname_of(parts)
    if not hostname:
        return ContentType.UNKNOWN

    for domain, content_type in HOST_TABLE.items():
        if host_matches(hostname, domain):
            return content_type

    suffix = PurePosixPath(parts.path).suffix.lower()
    return EXTENSION_TABLE.get(suffix, ContentType.UNKNOWN)
