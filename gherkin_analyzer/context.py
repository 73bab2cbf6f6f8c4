"""Per-invocation state shared by the CLI commands.

A ``Session`` owns the output channel and the SonarQube client for one
command run. It is created by the CLI group and closed when the click
context is torn down.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import click

from gherkin_analyzer.client import SonarClient
from gherkin_analyzer.models import SonarConfig


@dataclass
class Session:
    config_path: str
    output_path: str | None = None
    pretty: bool = False
    verbose: bool = False
    _client: SonarClient | None = field(default=None, init=False, repr=False)

    # ------------------------------------------------------------------
    # Output channel
    # ------------------------------------------------------------------

    def log(self, message: str) -> None:
        """Write a diagnostic line to stderr when --verbose is on."""
        if self.verbose:
            click.echo(f"[verbose] {message}", err=True)

    def info(self, message: str) -> None:
        click.echo(message, err=True)

    def emit_json(self, data: Any) -> None:
        """Write JSON to stdout or to the file specified by --output."""
        indent = 2 if self.pretty else None
        text = json.dumps(data, indent=indent, ensure_ascii=False)

        if self.output_path:
            with open(self.output_path, "w", encoding="utf-8") as f:
                f.write(text)
            click.echo(f"Output written to '{self.output_path}'", err=True)
        else:
            click.echo(text)

    # ------------------------------------------------------------------
    # SonarQube client
    # ------------------------------------------------------------------

    def client(self, sonar: SonarConfig) -> SonarClient:
        """Return the session's client, creating it on first use."""
        if self._client is None:
            self.log(f"Connecting to {sonar.server_url}")
            self._client = SonarClient(url=sonar.server_url, token=sonar.token)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
