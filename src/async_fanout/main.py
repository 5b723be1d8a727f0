"""CLI entrypoint for async-fanout."""

import rich_click as click

from async_fanout import __version__
from async_fanout.dispatcher.controllers import DispatchCliController, DispatchRunCommand
from async_fanout.dispatcher.models import DispatchPolicy

click.rich_click.TEXT_MARKUP = "markdown"
DISPATCH_CONTROLLER = DispatchCliController()


@click.group()
@click.version_option(version=__version__, prog_name="async-fanout")
def async_fanout() -> None:
    """Concurrent fan-out/fan-in dispatcher CLI."""


@async_fanout.command("run")
@click.option(
    "--policy",
    type=click.Choice([policy.value for policy in DispatchPolicy], case_sensitive=False),
    default=DispatchPolicy.JOIN_ALL.value,
    show_default=True,
    help="Result-reduction and failure-handling policy.",
)
@click.option(
    "--worker",
    "workers",
    multiple=True,
    required=True,
    help="Simulated worker label. Can be repeated; order is preserved.",
)
@click.option(
    "--fail-worker",
    "failing_workers",
    multiple=True,
    help="Label of a `--worker` whose calls always fail. Can be repeated.",
)
@click.option(
    "--message",
    "messages",
    multiple=True,
    required=True,
    help=(
        "Message to send. A single message is broadcast to every worker; "
        "otherwise give one message per worker."
    ),
)
@click.option(
    "--fallback",
    default=None,
    help="Fallback for failed workers under fail-soft. "
    "If omitted, ASYNC_FANOUT_DEFAULT_FALLBACK is used.",
)
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Deadline for the aggregate. If omitted, ASYNC_FANOUT_AWAIT_TIMEOUT_SECONDS is used.",
)
def run(  # noqa: PLR0913
    policy: str,
    workers: tuple[str, ...],
    failing_workers: tuple[str, ...],
    messages: tuple[str, ...],
    fallback: str | None,
    timeout_seconds: float | None,
) -> None:
    """Dispatch messages to simulated workers and print the aggregate."""

    result = DISPATCH_CONTROLLER.run(
        DispatchRunCommand(
            policy=policy.lower(),
            workers=workers,
            failing_workers=failing_workers,
            messages=messages,
            fallback=fallback,
            timeout_seconds=timeout_seconds,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Dispatch failed.")


@async_fanout.command("policies")
def policies() -> None:
    """List supported dispatch policies."""

    _emit_lines(DISPATCH_CONTROLLER.policies())


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    async_fanout()
