"""
Parsing helpers for YouTube API payloads.

None of these functions raise on malformed input: an unparseable
duration is 0 seconds and a missing link is None.
"""

import re

# ISO 8601 durations as returned in contentDetails.duration, e.g. PT1H2M10S
_DURATION_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)

SOCIAL_DOMAINS = {
    "instagram": "instagram.com",
    "twitter": "twitter.com",
    "facebook": "facebook.com",
}

_WEBSITE_PATTERN = re.compile(
    r"https?://(?!(?:www\.)?(?:instagram|twitter|facebook)\.com)\S+",
    re.IGNORECASE,
)


def parse_duration(duration: str | None) -> int:
    """
    Convert an ISO 8601 duration to total seconds.

    Missing units count as zero. Anything that does not look like a
    duration yields 0.

    Examples:
        >>> parse_duration("PT1H2M10S")
        3730
        >>> parse_duration("PT15M")
        900
        >>> parse_duration("not a duration")
        0
    """
    if not isinstance(duration, str):
        return 0

    match = _DURATION_PATTERN.match(duration.strip().upper())
    if not match:
        return 0

    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    return (
        parts["days"] * 86400
        + parts["hours"] * 3600
        + parts["minutes"] * 60
        + parts["seconds"]
    )


def extract_social_link(description: str | None, domain: str) -> str | None:
    """Return the first link to ``domain`` found in a channel description."""
    if not description:
        return None
    pattern = rf"https?://(?:www\.)?{re.escape(domain)}\S+"
    match = re.search(pattern, description, re.IGNORECASE)
    return match.group(0) if match else None


def extract_website_link(description: str | None) -> str | None:
    """Return the first link that does not point at a known social network."""
    if not description:
        return None
    match = _WEBSITE_PATTERN.search(description)
    return match.group(0) if match else None


def extract_social_links(description: str | None) -> dict[str, str | None]:
    """Collect instagram/twitter/facebook/website links from a description."""
    links: dict[str, str | None] = {
        name: extract_social_link(description, domain)
        for name, domain in SOCIAL_DOMAINS.items()
    }
    links["website"] = extract_website_link(description)
    return links
