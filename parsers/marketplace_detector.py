"""
Marketplace detection for unlabeled order exports.

Picks the profile that most likely produced a file, from its filename
first and its header row second.
"""

from typing import Iterable, Optional
import structlog

from parsers.marketplace_profiles import MarketplaceProfile, list_profiles

logger = structlog.get_logger(__name__)

# Identifying headers needed for a header-set match
MIN_HEADER_MATCHES = 2


def detect_marketplace(
    filename: Optional[str],
    headers: Iterable[str],
    profiles: Optional[list[MarketplaceProfile]] = None,
) -> Optional[MarketplaceProfile]:
    """
    Detect which marketplace produced an order file.

    Priority:
        1. Filename pattern (first matching profile wins)
        2. At least two identifying headers contained in the header row
        3. Any single identifying header equal to a header
    Header comparisons are case-insensitive.

    Args:
        filename: Uploaded file name (may be empty)
        headers: Column names of the file
        profiles: Profiles to consider, defaults to the registry

    Returns:
        Matching profile, or None when the generic mapping should be used
    """
    candidates = profiles if profiles is not None else list_profiles()
    headers_lower = [str(h).strip().lower() for h in headers if h is not None]

    if filename:
        for profile in candidates:
            if profile.matches_filename(filename):
                logger.debug("marketplace_detected", marketplace=profile.id, by="filename")
                return profile

    for profile in candidates:
        match_count = sum(
            1 for id_header in profile.identifying_headers
            if any(id_header.lower() in header for header in headers_lower)
        )
        if match_count >= MIN_HEADER_MATCHES:
            logger.debug(
                "marketplace_detected",
                marketplace=profile.id,
                by="headers",
                match_count=match_count,
            )
            return profile

    header_set = set(headers_lower)
    for profile in candidates:
        if any(id_header.lower() in header_set for id_header in profile.identifying_headers):
            logger.debug("marketplace_detected", marketplace=profile.id, by="single_header")
            return profile

    logger.debug("marketplace_not_detected", filename=filename, header_count=len(headers_lower))
    return None
