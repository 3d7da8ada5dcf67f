"""
CLI interface for AI Writing Guard.

Provides command-line access to the guarded writing features and to
usage analytics.
"""

import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ai_writing_guard.config.loader import load_settings
from ai_writing_guard.core.errors import WritingGuardError, error_envelope
from ai_writing_guard.core.quota import Caller
from ai_writing_guard.sdk.assistant import WritingAssistant, build_assistant
from ai_writing_guard.storage.repository import initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

LOCAL_IP = "127.0.0.1"


class _State:
    config_path: Optional[str] = None


state = _State()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """AI Writing Guard CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True
    )
    state.config_path = config
    if ctx.invoked_subcommand is None:
        console.print("AI Writing Guard - Use --help to see available commands")


@app.command()
def init():
    """Initialize the usage ledger database."""
    try:
        settings = load_settings(state.config_path)
        initialize_schema(settings.db_path)
        console.print(f"[green]✓[/] Usage ledger initialized at {settings.db_path}")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="What to write about"),
    user_id: int = typer.Option(..., "--user-id", "-u", help="Calling user"),
    tone: Optional[str] = typer.Option(None, "--tone", help="professional, casual, technical or creative"),
    length: Optional[str] = typer.Option(None, "--length", help="short, medium or long"),
    creativity: Optional[float] = typer.Option(None, "--creativity", help="Temperature between 0 and 1"),
    tier: Optional[str] = typer.Option(None, "--tier", help="Subscription tier of the user")
):
    """Generate new post content from a prompt."""
    _run(lambda a, c: a.generate(c, prompt, tone=tone, length=length, creativity=creativity), user_id, tier)


@app.command()
def grammar(
    text: str = typer.Argument(..., help="Text to correct"),
    user_id: int = typer.Option(..., "--user-id", "-u", help="Calling user"),
    tier: Optional[str] = typer.Option(None, "--tier", help="Subscription tier of the user")
):
    """Correct grammar, spelling and punctuation."""
    _run(lambda a, c: a.grammar(c, text), user_id, tier)


@app.command()
def enhance(
    text: str = typer.Argument(..., help="Text to enhance"),
    enhancement_type: str = typer.Option(..., "--type", "-t", help="expand, simplify, improve or summarize"),
    user_id: int = typer.Option(..., "--user-id", "-u", help="Calling user"),
    tier: Optional[str] = typer.Option(None, "--tier", help="Subscription tier of the user")
):
    """Expand, simplify, improve or summarize text."""
    _run(lambda a, c: a.enhance(c, text, enhancement_type), user_id, tier)


@app.command()
def titles(
    content: str = typer.Argument(..., help="Post content to title"),
    user_id: int = typer.Option(..., "--user-id", "-u", help="Calling user"),
    count: int = typer.Option(5, "--count", "-n", help="Number of titles (1-10)"),
    tier: Optional[str] = typer.Option(None, "--tier", help="Subscription tier of the user")
):
    """Suggest titles for post content."""
    _run(lambda a, c: a.titles(c, content, count), user_id, tier)


@app.command()
def usage(
    user_id: int = typer.Option(..., "--user-id", "-u", help="User to report on"),
    period: int = typer.Option(30, "--period", "-p", help="Trailing window in days (1-365)")
):
    """Show AI usage for a user over a trailing window."""
    assistant = None
    try:
        assistant = _build()
        report = assistant.usage(Caller(ip_address=LOCAL_IP, user_id=user_id), period)
    except WritingGuardError as e:
        _print_error(e)
        sys.exit(EXIT_CODE_FAIL)
    except (ValueError, OSError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    finally:
        if assistant is not None:
            assistant.close()

    _display_usage(report)
    sys.exit(EXIT_CODE_PASS)


def _build() -> WritingAssistant:
    return build_assistant(load_settings(state.config_path))


def _run(action, user_id: int, tier: Optional[str]) -> None:
    caller = Caller(ip_address=LOCAL_IP, user_id=user_id, subscription_tier=tier)
    assistant = None
    try:
        assistant = _build()
        result = action(assistant, caller)
    except WritingGuardError as e:
        _print_error(e)
        sys.exit(EXIT_CODE_FAIL)
    except (ValueError, OSError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    finally:
        if assistant is not None:
            assistant.close()

    console.print_json(data=result)
    sys.exit(EXIT_CODE_PASS)


def _print_error(error: WritingGuardError) -> None:
    body = error_envelope(error)["error"]
    console.print(f"[red]Error {body['statusCode']} {body['code']}:[/] {body['message']}")


def _display_usage(report: dict) -> None:
    """Render a usage report as tables."""
    console.print(f"\n[bold]AI Usage ({report['period']})[/bold]")
    console.print("-" * 40)
    console.print(f"Requests: {report['total']['requests']:,}")
    console.print(f"Tokens: {report['total']['tokens']:,}")

    if not report["byFeature"]:
        console.print("\n[dim]No usage recorded in this period.[/]")
        return

    features = Table(title="By feature")
    features.add_column("Feature")
    features.add_column("Requests", justify="right")
    features.add_column("Tokens", justify="right")
    features.add_column("Avg tokens", justify="right")
    for row in report["byFeature"]:
        features.add_row(
            row["featureType"],
            str(row["requestCount"]),
            f"{row['totalTokens']:,}",
            f"{row['avgTokensPerRequest']:,.2f}"
        )
    console.print(features)

    daily = Table(title="Daily")
    daily.add_column("Date")
    daily.add_column("Requests", justify="right")
    daily.add_column("Tokens", justify="right")
    for row in report["dailyUsage"]:
        daily.add_row(row["date"], str(row["requests"]), f"{row['tokens']:,}")
    console.print(daily)


if __name__ == "__main__":
    app()
