"""Import of active rules from a SonarQube quality profile.

Functions:
    fetch_active_rules(client, profile_key)        -> dict[str, ImportedRule]
    import_profile(client, profile_name_or_key)    -> ImportResult

Only rules of the ``qualimetry-gherkin`` repository are kept; their keys are
stored without the repository prefix (``qualimetry-gherkin:R2`` -> ``R2``),
which is the key format the analyzer's ``rules`` setting expects.
"""

from typing import Any

from gherkin_analyzer.client import SonarClient
from gherkin_analyzer.models import ImportedRule, ImportResult, RuleActivation
from gherkin_analyzer.profiles import fetch_quality_profiles, resolve_profile_key

REPO_KEY = "qualimetry-gherkin"
RULES_PAGE_SIZE = 100
DEFAULT_SEVERITY = "MAJOR"

_REPO_PREFIX = f"{REPO_KEY}:"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RuleImportError(Exception):
    """Base exception for a profile import that cannot complete."""


class NoProfilesFoundError(RuleImportError):
    """Raised when the server has no Gherkin quality profile at all."""


class ProfileNotMatchedError(RuleImportError):
    """Raised when no profile matches the requested name or key."""

    def __init__(self, name_or_key: str, available: list[str]) -> None:
        self.name_or_key = name_or_key
        self.available = available
        listed = ", ".join(available) or "(none)"
        super().__init__(
            f"No Gherkin quality profile matches '{name_or_key}'. Available profiles: {listed}"
        )


class NoActiveRulesError(RuleImportError):
    """Raised when the profile activates no rule of the Gherkin repository."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def fetch_active_rules(client: SonarClient, profile_key: str) -> dict[str, ImportedRule]:
    """Return the rules activated in *profile_key*, keyed by short rule key."""
    params = {
        "activation": "true",
        "qprofile":   profile_key,
        "f":          "actives",
    }
    rules: dict[str, ImportedRule] = {}

    for page in client.iter_pages(
        "/api/rules/search", params, results_key="rules", page_size=RULES_PAGE_SIZE
    ):
        actives = page.get("actives") or {}
        for raw in page.get("rules") or []:
            full_key = raw.get("key") or ""
            if not full_key.startswith(_REPO_PREFIX):
                continue
            activations = actives.get(full_key) or raw.get("activations") or []
            rules[full_key[len(_REPO_PREFIX):]] = _to_imported_rule(raw, activations)

    return rules


def import_profile(client: SonarClient, profile_name_or_key: str) -> ImportResult:
    """Resolve *profile_name_or_key* and return its normalized rule set.

    The result is meant to replace the stored rule configuration wholesale,
    hence ``replace_defaults`` is always set.

    Raises:
        NoProfilesFoundError:   no Gherkin profile on the server
        ProfileNotMatchedError: nothing matches *profile_name_or_key*
        NoActiveRulesError:     the profile has no active Gherkin rule
        SonarClientError:       any HTTP or network failure
    """
    profiles = fetch_quality_profiles(client)
    if not profiles:
        raise NoProfilesFoundError(
            f"No Gherkin quality profiles found on '{client.base_url}'. "
            "Check that the Gherkin plugin is installed on the server."
        )

    profile_key = resolve_profile_key(profiles, profile_name_or_key)
    if profile_key is None:
        raise ProfileNotMatchedError(profile_name_or_key, [p.name for p in profiles])

    rules = fetch_active_rules(client, profile_key)
    if not rules:
        raise NoActiveRulesError(
            f"Quality profile '{profile_key}' has no active {REPO_KEY} rules."
        )

    return ImportResult(profile_key=profile_key, rules=rules, replace_defaults=True)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _to_imported_rule(raw: dict[str, Any], activations: list[dict]) -> ImportedRule:
    # The first activation wins when the server reports several
    activation = RuleActivation.from_json(activations[0]) if activations else None

    severity = (activation.severity if activation else None) or raw.get("severity") or DEFAULT_SEVERITY
    params = dict(activation.params) if activation else {}
    return ImportedRule(severity=str(severity).lower(), params=params)
