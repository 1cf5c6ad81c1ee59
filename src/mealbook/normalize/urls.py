"""Source URL canonicalization for recipe deduplication."""

import re
from typing import Literal
from urllib.parse import parse_qs, parse_qsl, urlencode, urlsplit, urlunsplit

from mealbook.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Host and Parameter Tables
# =============================================================================

# Leading host labels that never distinguish content, in any number
HOST_PREFIX_PATTERN = re.compile(r"^(?:www\.|m\.)+")

VIDEO_HOST = "youtube.com"
SHORT_VIDEO_HOST = "youtu.be"
VIDEO_HOSTS = {VIDEO_HOST, SHORT_VIDEO_HOST}

CANONICAL_VIDEO_URL = "https://www.youtube.com/watch?v={video_id}"

# Path prefixes on the full video host that carry the id as the next segment
VIDEO_PATH_PREFIXES = ("/embed/", "/v/", "/shorts/", "/live/")

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# Query parameters that only carry campaign or click attribution
TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "utm_id",
    "fbclid",
    "gclid",
    "dclid",
    "msclkid",
    "mc_cid",
    "mc_eid",
    "igshid",
    "yclid",
    "_ga",
    "ref",
    "ref_src",
}

DEFAULT_PORTS = {80, 443}

SourceType = Literal["youtube", "blog"]


# =============================================================================
# Video URLs
# =============================================================================


def _strip_host(hostname: str) -> str:
    """Lowercase a host and drop its leading www. and m. labels."""
    return HOST_PREFIX_PATTERN.sub("", hostname.lower())


def _valid_video_id(candidate: str | None) -> str | None:
    if candidate and VIDEO_ID_PATTERN.match(candidate):
        return candidate
    return None


def extract_video_id(url: str) -> str | None:
    """
    Extract the video id from a video-hosting URL.

    Supports:
    - https://www.youtube.com/watch?v=ID (also m. and bare host)
    - https://www.youtube.com/embed/ID, /v/ID, /shorts/ID, /live/ID
    - https://youtu.be/ID

    Returns None for other hosts or when no id is present.
    """
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except (AttributeError, ValueError):
        return None

    if not hostname:
        return None

    host = _strip_host(hostname)
    path = parts.path

    if host == VIDEO_HOST:
        if path.rstrip("/") == "/watch":
            values = parse_qs(parts.query).get("v")
            return _valid_video_id(values[0].strip() if values else None)
        for prefix in VIDEO_PATH_PREFIXES:
            if path.startswith(prefix):
                return _valid_video_id(path[len(prefix) :].split("/")[0])
        return None

    if host == SHORT_VIDEO_HOST:
        return _valid_video_id(path.lstrip("/").split("/")[0])

    return None


def is_video_url(url: str) -> bool:
    """Check if a URL points at a single video on a recognized host."""
    return extract_video_id(url) is not None


def detect_source_type(url: str) -> SourceType:
    """Classify a recipe source as a video or an article."""
    return "youtube" if is_video_url(url) else "blog"


# =============================================================================
# Canonicalization
# =============================================================================


def _fallback_key(raw_url: str) -> str:
    return raw_url.strip().lower()


def _strip_query(query: str, keep_query: bool) -> str:
    """Remove tracking parameters, then everything else unless asked to keep it."""
    if not keep_query:
        return ""
    params = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if key.lower() not in TRACKING_PARAMS and not key.lower().startswith("utm_")
    ]
    return urlencode(sorted(params))


def _canonical_netloc(host: str, port: int | None) -> str:
    # urlsplit drops the brackets of IPv6 literals
    if ":" in host:
        host = f"[{host}]"
    if port is None or port in DEFAULT_PORTS:
        return host
    return f"{host}:{port}"


def canonicalize(raw_url: str, keep_query: bool = False) -> str:
    """
    Map a raw source URL to the key used to deduplicate saved recipes.

    Video URLs collapse to one fixed watch URL per video id. Any other URL
    loses its fragment, tracking parameters (and, unless ``keep_query`` is
    set, all other parameters) and its trailing slash, and is forced to
    https on its lowercased host with the path case preserved.

    Never raises: input that does not parse as a URL with a host falls back to
    its trimmed, lowercased text, which is not guaranteed to deduplicate.
    """
    if not isinstance(raw_url, str):
        logger.debug(f"Cannot canonicalize non-string URL {raw_url!r}")
        return _fallback_key(str(raw_url))

    try:
        parts = urlsplit(raw_url.strip())
        hostname = parts.hostname
        port = parts.port
    except ValueError as e:
        logger.debug(f"Unparseable URL {raw_url!r}: {e}")
        return _fallback_key(raw_url)

    if not hostname:
        logger.debug(f"URL without host {raw_url!r}, using fallback key")
        return _fallback_key(raw_url)

    host = _strip_host(hostname)
    if not host:
        logger.debug(f"URL host {hostname!r} is only prefix labels, using fallback key")
        return _fallback_key(raw_url)

    if host in VIDEO_HOSTS:
        video_id = extract_video_id(raw_url)
        if video_id:
            return CANONICAL_VIDEO_URL.format(video_id=video_id)
        # No id: treated like any article URL on that host
        logger.debug(f"Video host without video id in {raw_url!r}")

    # Root stays "/"; "/a//" becomes "/a" so the key is stable on re-canonicalization
    path = parts.path.rstrip("/") or "/"

    query = _strip_query(parts.query, keep_query)

    return urlunsplit(("https", _canonical_netloc(host, port), path, query, ""))
