"""Configuration loading, validation and rule persistence.

Usage:
    config = load("gherkin-analyzer.yaml")        # raises ConfigError on bad config
    sonar  = config.sonar_config(profile="Team")  # raises ConfigError if incomplete
    save_rules("gherkin-analyzer.yaml", result)   # replaces the stored rule set
    generate_template("gherkin-analyzer.yaml")    # writes example file to disk
"""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gherkin_analyzer.models import ImportResult, SonarConfig

DEFAULT_CONFIG_PATH = "gherkin-analyzer.yaml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass
class Config:
    enabled: bool = True
    java_home: str = ""
    sonar_url: str = ""
    sonar_profile: str = ""
    sonar_token: str = ""
    rules: dict[str, Any] = field(default_factory=dict)
    rules_replace_defaults: bool = False

    def sonar_config(
        self,
        url: str | None = None,
        profile: str | None = None,
        token: str | None = None,
        require_profile: bool = True,
    ) -> SonarConfig:
        """Return the import settings, with command-line values taking precedence."""
        server_url = (url or self.sonar_url).strip()
        profile_name = (profile or self.sonar_profile).strip()
        token_value = (token or self.sonar_token).strip()

        errors: list[str] = []
        if not server_url:
            errors.append(
                "  - 'sonar.url' is missing (or set the SONAR_URL environment variable)"
            )
        if require_profile and not profile_name:
            errors.append(
                "  - 'sonar.profile' is missing (name or key of the quality profile)"
            )
        if errors:
            raise ConfigError("Invalid SonarQube configuration:\n" + "\n".join(errors))

        return SonarConfig(
            server_url=server_url,
            profile_name_or_key=profile_name,
            token=token_value or None,
        )


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def _read_mapping(config_path: str) -> dict:
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `gherkin-analyzer init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")
    return raw


def load(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration from a YAML file.

    Environment variables SONAR_URL and SONAR_TOKEN override file values.

    Raises:
        ConfigError: if the file is missing, malformed, or a section has the
                     wrong shape.
    """
    raw = _read_mapping(config_path)

    java = raw.get("java") or {}
    sonar = raw.get("sonar") or {}
    rules = raw.get("rules") or {}
    if not isinstance(java, dict) or not isinstance(sonar, dict):
        raise ConfigError(f"'java' and 'sonar' in '{config_path}' must be mappings.")
    if not isinstance(rules, dict):
        raise ConfigError(f"'rules' in '{config_path}' must be a mapping of rule key to settings.")

    url   = os.environ.get("SONAR_URL")   or sonar.get("url", "")
    token = os.environ.get("SONAR_TOKEN") or sonar.get("token", "")

    return Config(
        enabled=bool(raw.get("enabled", True)),
        java_home=str(java.get("home") or "").strip(),
        sonar_url=str(url or "").strip(),
        sonar_profile=str(sonar.get("profile") or "").strip(),
        sonar_token=str(token or "").strip(),
        rules=rules,
        rules_replace_defaults=bool(raw.get("rulesReplaceDefaults", False)),
    )


# ---------------------------------------------------------------------------
# Rule persistence (used by `import-profile`)
# ---------------------------------------------------------------------------

def save_rules(config_path: str, result: ImportResult) -> None:
    """Replace the ``rules`` mapping of *config_path* with an imported rule set.

    The previous rules are dropped, not merged, and ``rulesReplaceDefaults``
    tells the analyzer to ignore its built-in default rule set. Other keys of
    the file are kept, but YAML comments are not preserved by the rewrite.

    The new content goes to a temporary file next to *config_path* which then
    replaces it, so a failed write leaves the previous file untouched.

    Raises:
        ConfigError: if the file cannot be read or written.
    """
    raw = _read_mapping(config_path)
    raw["rulesReplaceDefaults"] = result.replace_defaults
    raw["rules"] = result.rules_dict()

    text = yaml.safe_dump(raw, sort_keys=False, allow_unicode=True)
    path = Path(config_path)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as exc:
        raise ConfigError(f"Failed to write '{config_path}': {exc}") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise ConfigError(f"Failed to write '{config_path}': {exc}") from exc


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
enabled: true

java:
  home: ""                         # JDK 17+ installation or java executable; JAVA_HOME/PATH if empty

sonar:
  url: "https://sonar.example.com"
  profile: "Qualimetry way"        # Quality profile name or key
  token: "squ_xxxxxxxxxxxx"        # Generate at: <your-sonar-url>/account/security

# Filled by `gherkin-analyzer import-profile`
rulesReplaceDefaults: false
rules: {}
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template gherkin-analyzer.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting secrets).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
