"""Quality profile lookup.

Functions:
    fetch_quality_profiles(client)               -> list[QualityProfile]
    resolve_profile_key(profiles, name_or_key)   -> str | None
"""

from typing import Iterable

from gherkin_analyzer.client import SonarClient
from gherkin_analyzer.models import QualityProfile

GHERKIN_LANGUAGE = "gherkin"


def fetch_quality_profiles(client: SonarClient) -> list[QualityProfile]:
    """Return the Gherkin quality profiles in the order the server lists them."""
    data = client.get("/api/qualityprofiles/search", {"language": GHERKIN_LANGUAGE})
    profiles = [QualityProfile.from_json(raw) for raw in data.get("profiles") or []]
    # Some servers ignore the language filter for unknown languages
    return [p for p in profiles if p.language == GHERKIN_LANGUAGE]


def resolve_profile_key(profiles: Iterable[QualityProfile], name_or_key: str) -> str | None:
    """Return the key of the profile designated by *name_or_key*, or None.

    An exact match (key verbatim, or name ignoring case) anywhere in the list
    beats a partial match; otherwise the first profile whose key or name
    contains the input (ignoring case) is chosen.
    """
    profiles = list(profiles)
    wanted = name_or_key.strip()
    lowered = wanted.lower()

    for profile in profiles:
        if profile.key == wanted or profile.name.lower() == lowered:
            return profile.key

    for profile in profiles:
        if lowered in profile.key.lower() or lowered in profile.name.lower():
            return profile.key

    return None
