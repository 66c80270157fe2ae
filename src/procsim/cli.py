"""procsim CLI: drive a fixture file's simulated commands from the shell."""

import logging
import sys

import click

from .config import FIXTURE_ENV, FixtureError, load_fixture, resolve_fixture_path
from .errors import Canceled, ExecutableNotFound, ProcsimError
from .runtime import FuncExec

# shell conventions for "timed out" and "command not found"
EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127


class ProcsimContext:
    def __init__(self):
        self.fixture_path = None
        self._runtime = None

    def runtime(self) -> FuncExec:
        """Load the fixture on first use and build its runtime."""
        if self._runtime is None:
            if self.fixture_path is None:
                raise FixtureError(
                    f"No fixture found (use --fixture or set ${FIXTURE_ENV})"
                )
            self._runtime = load_fixture(self.fixture_path).build_exec()
        return self._runtime


pass_context = click.make_pass_decorator(ProcsimContext, ensure=True)


@click.group()
@click.option(
    "--fixture",
    type=click.Path(dir_okay=False),
    help=f"Fixture file (overrides ${FIXTURE_ENV} and .procsim.toml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log command lifecycle events")
@click.pass_context
def cli(ctx, fixture, verbose):
    """procsim - run commands against in-process fake handlers."""
    ctx.ensure_object(ProcsimContext)
    ctx.obj.fixture_path = resolve_fixture_path(fixture)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr
        )


@cli.command()
@click.argument("name")
@pass_context
def which(ctx, name):
    """Print the path NAME resolves to.

    Examples:
        procsim which git
        procsim --fixture tests.toml which /usr/bin/git
    """
    try:
        click.echo(ctx.runtime().look_path(name))
    except ProcsimError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command(context_settings=dict(ignore_unknown_options=True))
@click.option("--timeout", type=float, help="Cancel the command after SECONDS")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@pass_context
def run(ctx, timeout, command):
    """Run COMMAND against the fixture and exit with its status.

    Standard input is forwarded to the handler. Exits 124 when --timeout
    expires and 127 when the command does not resolve.

    Examples:
        procsim run git status
        echo hello | procsim run cat
        procsim run --timeout 0.5 -- slow-build --all
    """
    try:
        runtime = ctx.runtime()
    except ProcsimError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    stdin = click.get_binary_stream("stdin")
    input_data = None if stdin.isatty() else stdin.read()

    try:
        completed = runtime.run(command, input=input_data, timeout=timeout)
    except Canceled as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_TIMEOUT)
    except ExecutableNotFound as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_NOT_FOUND)

    if completed.stdout:
        click.echo(completed.stdout, nl=False)
    if completed.stderr:
        click.echo(completed.stderr, nl=False, err=True)
    sys.exit(completed.returncode)


@cli.command()
@pass_context
def routes(ctx):
    """List the fixture's routes in match order."""
    try:
        runtime = ctx.runtime()
    except ProcsimError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not len(runtime.mux):
        click.echo("No routes registered")
        return
    for i, route in enumerate(runtime.mux, 1):
        click.echo(f"{i}. {route.pattern}")


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
