"""cli.py – SlackRat command-line interface

Starts the different front-ends and runs one-off searches or permission
checks from a terminal.

Usage examples
--------------
$ slackrat api                             # HTTP API + Events webhook
$ slackrat bot                             # Socket Mode bot
$ slackrat mcp --transport stdio           # MCP server
$ slackrat check-config
$ slackrat diagnose --channel general --keyword deploy
$ slackrat search "#general" deploy --format csv
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import click
from dotenv import load_dotenv

from slackrat.config.log import configure_logging
from slackrat.config.settings import settings
from slackrat.diagnostics import check_configuration, results_as_dicts, run_diagnostics
from slackrat.tools.slack.channels import resolve_channel
from slackrat.tools.slack.client import SlackClient
from slackrat.tools.slack.errors import MissingTokenError, SlackAPIError
from slackrat.tools.slack.export import export_to_csv, export_to_json
from slackrat.tools.slack.models import SearchOptions
from slackrat.tools.slack.search import search_channel


def _client() -> SlackClient:
    if not settings.slack_bot_token:
        raise click.ClickException(str(MissingTokenError()))
    return SlackClient(settings.slack_bot_token)


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL.")
def cli(log_level: Optional[str]) -> None:
    """SlackRat: search Slack channel history."""
    load_dotenv(".env")
    configure_logging(log_level or settings.log_level)


@cli.command("api", help="Run the HTTP API and Slack Events webhook.")
@click.option("--host", default=None, help="Bind address (default: SERVER_HOST).")
@click.option("--port", type=int, default=None, help="Port (default: SERVER_PORT / PORT).")
@click.option("--reload", is_flag=True, help="Restart on code changes.")
def api_command(host: Optional[str], port: Optional[int], reload: bool) -> None:
    import uvicorn

    uvicorn.run(
        "main:app",
        host=host or settings.server_host,
        port=port or settings.server_port,
        reload=reload,
    )


@cli.command("bot", help="Run the Socket Mode bot.")
def bot_command() -> None:
    import slack_bot

    slack_bot.main()


@cli.command("mcp", help="Run the MCP server.")
@click.option("--transport", type=click.Choice(["stdio", "sse"]), default=None)
def mcp_command(transport: Optional[str]) -> None:
    from slackrat.server import run

    run(transport)


@cli.command("check-config", help="Show which settings are configured.")
def check_config_command() -> None:
    report = check_configuration(settings)

    click.echo("Required variables:")
    for key, present in report["required"].items():
        click.echo(f"  {'OK ' if present else 'MISSING'} {key}")
    click.echo("Optional variables:")
    for key, present in report["optional"].items():
        click.echo(f"  {'OK ' if present else '-- '} {key}")

    click.echo(f"Basic search:       {'ready' if report['basic_ready'] else 'not ready'}")
    click.echo(f"Events webhook:     {'ready' if report['events_ready'] else 'not ready'}")
    click.echo(f"Socket Mode bot:    {'ready' if report['socket_mode_ready'] else 'not ready'}")
    click.echo("Bot token scopes needed: " + ", ".join(report["required_scopes"]))

    if not report["basic_ready"]:
        raise SystemExit(1)


@cli.command("diagnose", help="Probe the token's permissions and access to a channel.")
@click.option("-c", "--channel", default=None, help="Channel name to check.")
@click.option("-k", "--keyword", default=None, help="Keyword to count in the latest messages.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
def diagnose_command(channel: Optional[str], keyword: Optional[str], as_json: bool) -> None:
    async def run():
        async with _client() as client:
            return await run_diagnostics(client, channel or settings.default_channel, keyword)

    results = asyncio.run(run())

    if as_json:
        click.echo(json.dumps(results_as_dicts(results), indent=2))
    else:
        for result in results:
            scope = f" [{result.scope}]" if result.scope else ""
            mark = "OK  " if result.ok else "FAIL"
            click.echo(f"{mark} {result.name}{scope} {result.detail}".rstrip())

    if not all(r.ok for r in results):
        raise SystemExit(1)


@cli.command("search", help="Search a channel and print the matches.")
@click.argument("channel")
@click.argument("query")
@click.option("--pattern", "is_pattern", is_flag=True, help="Treat QUERY as a regular expression.")
@click.option("--case-sensitive", is_flag=True)
@click.option("-l", "--limit", type=click.IntRange(1, 1000), default=1000, show_default=True)
@click.option("--context/--no-context", default=False, show_default=True,
              help="Include surrounding messages.")
@click.option("-f", "--format", "output_format",
              type=click.Choice(["text", "json", "csv"]), default="text", show_default=True)
def search_command(channel: str, query: str, is_pattern: bool, case_sensitive: bool,
                   limit: int, context: bool, output_format: str) -> None:
    from slackrat.bot.replies import format_search_summary

    options = SearchOptions(limit=limit, include_context=context, case_sensitive=case_sensitive)

    async def run():
        async with _client() as client:
            found = await resolve_channel(client, channel)
            return await search_channel(
                client,
                found["id"],
                keyword=None if is_pattern else query,
                pattern=query if is_pattern else None,
                options=options,
                channel_name=found.get("name"),
            )

    try:
        result = asyncio.run(run())
    except (ValueError, SlackAPIError) as exc:
        raise click.ClickException(str(exc)) from exc

    if output_format == "json":
        click.echo(export_to_json(result))
    elif output_format == "csv":
        click.echo(export_to_csv(result), nl=False)
    else:
        click.echo(format_search_summary(result))


if __name__ == "__main__":
    cli()
