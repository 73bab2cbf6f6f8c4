"""Data models shared by runtime discovery and rule-profile import.

Contains dataclasses used to carry values through a single call chain:
    - RuntimeCandidate / RuntimeInfo   (Java discovery)
    - SonarConfig                      (import input)
    - QualityProfile / RuleActivation  (parsed SonarQube JSON)
    - ImportedRule / ImportResult      (normalized output)
"""

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Runtime discovery
# ---------------------------------------------------------------------------

SOURCE_CONFIGURED  = "configured"
SOURCE_ENV_HOME    = "env-home"
SOURCE_SEARCH_PATH = "search-path"


@dataclass(frozen=True)
class RuntimeCandidate:
    path: str
    source: str


@dataclass(frozen=True)
class RuntimeInfo:
    """A Java executable that passed discovery and the version gate."""

    path: str
    source: str
    version: int | None

    def to_dict(self) -> dict:
        return {"path": self.path, "source": self.source, "version": self.version}


# ---------------------------------------------------------------------------
# SonarQube import
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SonarConfig:
    """Connection settings for one profile import."""

    server_url: str
    profile_name_or_key: str
    token: str | None = None


@dataclass(frozen=True)
class QualityProfile:
    key: str
    name: str
    language: str

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "QualityProfile":
        return cls(
            key=str(raw.get("key") or ""),
            name=str(raw.get("name") or ""),
            language=str(raw.get("language") or ""),
        )

    def to_dict(self) -> dict:
        return {"key": self.key, "name": self.name, "language": self.language}


@dataclass(frozen=True)
class RuleActivation:
    """Effective configuration of one rule within one profile."""

    severity: str | None = None
    params: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "RuleActivation":
        params = [
            (str(p["key"]), str(p["value"]))
            for p in raw.get("params") or []
            if p.get("key") and p.get("value") is not None
        ]
        return cls(severity=raw.get("severity"), params=params)


@dataclass(frozen=True)
class ImportedRule:
    """A rule entry as written to the ``rules`` settings mapping.

    ``params`` holds the per-rule properties (e.g. ``maxLength``); they are
    flattened next to ``enabled`` and ``severity`` when serialized.
    """

    severity: str
    params: dict[str, str] = field(default_factory=dict)
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"enabled": self.enabled, "severity": self.severity}
        for key, value in self.params.items():
            # enabled / severity are never overridden by a parameter
            entry.setdefault(key, value)
        return entry


@dataclass(frozen=True)
class ImportResult:
    profile_key: str
    rules: dict[str, ImportedRule]
    replace_defaults: bool = True

    def rules_dict(self) -> dict[str, dict[str, Any]]:
        return {key: rule.to_dict() for key, rule in self.rules.items()}

    def to_dict(self) -> dict:
        return {
            "profile_key":      self.profile_key,
            "replace_defaults": self.replace_defaults,
            "total":            len(self.rules),
            "rules":            self.rules_dict(),
        }
