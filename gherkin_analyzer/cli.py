"""CLI entry point — command definitions using Click.

Commands:
    init            Generate a template config file
    check-runtime   Locate and validate the Java runtime
    start-server    Launch the analysis server with the validated runtime
    list-profiles   List the Gherkin quality profiles of a SonarQube server
    import-profile  Import a quality profile's active rules into the config file
"""

import functools
import subprocess
import sys
from pathlib import Path

import click

from gherkin_analyzer import __version__
from gherkin_analyzer.config import DEFAULT_CONFIG_PATH, Config
from gherkin_analyzer.context import Session


# ---------------------------------------------------------------------------
# Helpers shared by all commands
# ---------------------------------------------------------------------------

def _load_config(session: Session, required: bool = True) -> Config:
    """Load the config file; an absent file yields defaults unless *required*."""
    from gherkin_analyzer.config import load

    if not required and not Path(session.config_path).exists():
        session.log(f"No config file at '{session.config_path}', using defaults")
        return Config()
    return load(session.config_path)


def _handle_errors(func):
    """Decorator that turns every known error into one stderr line and exit 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from gherkin_analyzer.client import (
            AuthenticationError,
            NetworkError,
            NotFoundError,
            SonarClientError,
        )
        from gherkin_analyzer.config import ConfigError
        from gherkin_analyzer.rules import RuleImportError
        from gherkin_analyzer.runtime import RuntimeNotAvailableError

        try:
            return func(*args, **kwargs)
        except ConfigError as exc:
            click.echo(f"Configuration error: {exc}", err=True)
            sys.exit(1)
        except RuntimeNotAvailableError as exc:
            click.echo(f"Java runtime error: {exc}", err=True)
            sys.exit(1)
        except RuleImportError as exc:
            click.echo(f"Import error: {exc}", err=True)
            sys.exit(1)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
            sys.exit(1)
        except NotFoundError as exc:
            click.echo(f"Not found: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except SonarClientError as exc:
            click.echo(f"SonarQube error: {exc}", err=True)
            sys.exit(1)

    return wrapper


_url_option = click.option("--url", default=None, help="SonarQube server URL (overrides config).")
_token_option = click.option("--token", default=None, help="SonarQube user token (overrides config).")
_java_home_option = click.option(
    "--java-home", default=None,
    help="Java executable or JDK installation (overrides 'java.home').",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True,
              help="Path to the configuration file.")
@click.option("--output", "output_path", default=None,
              help="Write JSON output to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="gherkin-analyzer")
@click.pass_context
def cli(ctx: click.Context, config_path: str, output_path: str | None,
        pretty: bool, verbose: bool) -> None:
    """Gherkin analyzer tooling — Java runtime checks and SonarQube profile import."""
    session = Session(
        config_path=config_path,
        output_path=output_path,
        pretty=pretty,
        verbose=verbose,
    )
    ctx.obj = session
    ctx.call_on_close(session.close)


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default=DEFAULT_CONFIG_PATH, show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template gherkin-analyzer.yaml file."""
    from gherkin_analyzer.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your Java home, server URL, token and quality profile.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# check-runtime
# ---------------------------------------------------------------------------

@cli.command("check-runtime")
@_java_home_option
@click.pass_obj
@_handle_errors
def check_runtime_command(session: Session, java_home: str | None) -> None:
    """Locate a Java 17+ runtime and print it as JSON."""
    from gherkin_analyzer.runtime import resolve_runtime

    config = _load_config(session, required=False)
    runtime = resolve_runtime(java_home or config.java_home or None)

    session.log(f"Java executable: {runtime.path} (from {runtime.source})")
    session.log(f"Java version detected: {runtime.version or 'unknown'}")
    session.emit_json(runtime.to_dict())


# ---------------------------------------------------------------------------
# start-server
# ---------------------------------------------------------------------------

@cli.command("start-server")
@click.argument("server_jar", type=click.Path(dir_okay=False))
@_java_home_option
@click.pass_obj
@_handle_errors
def start_server_command(session: Session, server_jar: str, java_home: str | None) -> None:
    """Launch the analysis server SERVER_JAR with a validated Java runtime."""
    from gherkin_analyzer.runtime import resolve_runtime

    config = _load_config(session, required=False)
    if not config.enabled:
        session.info("Gherkin Analyzer is disabled via settings.")
        return

    runtime = resolve_runtime(java_home or config.java_home or None)
    session.log(f"Java executable: {runtime.path} (from {runtime.source})")
    session.log(f"Java version detected: {runtime.version or 'unknown'}")

    if not Path(server_jar).is_file():
        session.info(f"Server JAR not found at '{server_jar}'.")
        sys.exit(1)

    session.log("Starting language server...")
    try:
        completed = subprocess.run([runtime.path, "-jar", server_jar], check=False)
    except OSError as exc:
        session.info(f"Failed to start language server with '{runtime.path}': {exc}")
        sys.exit(1)
    sys.exit(completed.returncode)


# ---------------------------------------------------------------------------
# list-profiles
# ---------------------------------------------------------------------------

@cli.command("list-profiles")
@_url_option
@_token_option
@click.pass_obj
@_handle_errors
def list_profiles_command(session: Session, url: str | None, token: str | None) -> None:
    """List the Gherkin quality profiles available on the server."""
    from gherkin_analyzer.profiles import fetch_quality_profiles

    config = _load_config(session, required=False)
    sonar = config.sonar_config(url=url, token=token, require_profile=False)

    profiles = fetch_quality_profiles(session.client(sonar))
    session.log(f"{len(profiles)} Gherkin profile(s) found")
    session.emit_json([p.to_dict() for p in profiles])


# ---------------------------------------------------------------------------
# import-profile
# ---------------------------------------------------------------------------

@cli.command("import-profile")
@_url_option
@click.option("--profile", default=None, help="Quality profile name or key (overrides config).")
@_token_option
@click.option("--dry-run", is_flag=True, default=False,
              help="Print the imported rules as JSON instead of saving them.")
@click.pass_obj
@_handle_errors
def import_profile_command(session: Session, url: str | None, profile: str | None,
                           token: str | None, dry_run: bool) -> None:
    """Replace the configured rules with the active rules of a quality profile."""
    from gherkin_analyzer.config import save_rules
    from gherkin_analyzer.rules import import_profile

    config = _load_config(session, required=not dry_run)
    sonar = config.sonar_config(url=url, profile=profile, token=token)

    session.log(f"Importing quality profile '{sonar.profile_name_or_key}'")
    result = import_profile(session.client(sonar), sonar.profile_name_or_key)
    session.log(f"Resolved profile key: {result.profile_key}")

    if dry_run:
        session.emit_json(result.to_dict())
        return

    save_rules(session.config_path, result)
    session.info(
        f"Imported {len(result.rules)} rules from profile '{result.profile_key}' "
        f"into '{session.config_path}'."
    )
