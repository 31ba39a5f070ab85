"""
CalcDispatch CLI.

Runs the dispatch server and offers a few commands for talking to a
running one.
"""

import json

import click

from calcdispatch.client import DispatchClient
from calcdispatch.core.config import get_config
from calcdispatch.core.exceptions import DispatchClientError


@click.group()
@click.version_option(package_name="calcdispatch")
@click.option(
    "--url",
    default=None,
    help="Server URL for client commands (default: CALCDISPATCH_CLIENT_BASE_URL)",
)
@click.pass_context
def cli(ctx, url):
    """
    CALCDISPATCH - pull-based dispatch of arithmetic expression tasks.

    \b
    Commands:
      calcdispatch serve         Run the dispatch server
      calcdispatch submit EXPR   Submit an expression
      calcdispatch status ID     Show a task
      calcdispatch operations    List supported operators
    """
    ctx.ensure_object(dict)
    ctx.obj["url"] = url


@cli.command()
@click.option("--host", default=None, help="Bind address")
@click.option("--port", "-p", default=None, type=int, help="Port to listen on")
@click.option(
    "--report-mode",
    type=click.Choice(["overwrite", "strict"]),
    default=None,
    help="How reported results are applied",
)
def serve(host, port, report_mode):
    """Run the dispatch server."""
    import uvicorn

    from calcdispatch.api.app import create_app

    config = get_config()
    if report_mode:
        config = config.model_copy(
            update={
                "registry": config.registry.model_copy(update={"report_mode": report_mode})
            }
        )

    uvicorn.run(
        create_app(config),
        host=host if host is not None else config.server.host,
        port=port if port is not None else config.server.port,
    )


@cli.command()
@click.argument("expression")
@click.pass_context
def submit(ctx, expression):
    """Submit EXPRESSION and print the new task id."""
    with _client(ctx) as client:
        click.echo(client.submit(expression))


@cli.command()
@click.argument("task_id", type=int)
@click.pass_context
def status(ctx, task_id):
    """Show the record of task TASK_ID."""
    with _client(ctx) as client:
        task = client.status(task_id)
    if task is None:
        raise click.ClickException(f"Task {task_id} not found")
    click.echo(json.dumps(task.model_dump(mode="json", exclude_none=True), indent=2))


@cli.command()
@click.pass_context
def operations(ctx):
    """List supported operators and their simulated cost."""
    with _client(ctx) as client:
        for op in client.operations():
            click.echo(f"{op.operator}\t{op.duration}s")


def _client(ctx) -> DispatchClient:
    return DispatchClient(ctx.obj.get("url"))


def main():
    try:
        cli()
    except DispatchClientError as e:
        raise SystemExit(f"Error: {e.message}") from e


if __name__ == "__main__":
    main()
