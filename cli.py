#!/usr/bin/env python3
"""Command-line interface for the NFC text writer."""

import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text

from nfc_text.config import load_config
from nfc_text.main import Application
from nfc_text.services.text_tag import OperationRequest, OperationMode

app = typer.Typer(
    name="nfc-text",
    help="Write and read NDEF text records on NFC tags",
    add_completion=False,
)

console = Console()


def get_app() -> Application:
    """Get initialized application instance."""
    try:
        config = load_config()
        application = Application(config)
        application.initialize()
        return application
    except Exception as e:
        console.print(f"[red]Error:[/red] Failed to initialize application: {e}")
        raise typer.Exit(1)


def print_result(result: dict) -> None:
    """Print a tag operation result."""
    if result.get("success"):
        if result["mode"] == "write":
            note = " (formatted)" if result.get("formatted") else ""
            console.print(f"\n[bold green]✓ Write OK{note}[/bold green] ({result['preview']})")
            console.print("Tag NOT locked, you can rewrite anytime.\n")
        elif result["mode"] == "read":
            if result.get("text") is None:
                console.print(f"\n[yellow]{result.get('message')}[/yellow]\n")
            else:
                console.print("\n[bold green]✓ Read OK[/bold green]\n")
                console.print(Panel(Text(result["text"]), title="Last read", border_style="green"))
            if result.get("skipped"):
                console.print(f"[yellow]Skipped {result['skipped']} malformed text record(s)[/yellow]")
    else:
        console.print(f"\n[red]✗ {result.get('error')}[/red]")

    table = Table(show_header=False, box=None)
    for line in result.get("tag_info", "").splitlines():
        label, _, value = line.partition(": ")
        table.add_row(f"{label}:", f"[cyan]{value}[/cyan]")
    console.print(table)
    console.print()


@app.command()
def write(
    text: str = typer.Argument(..., help="Text to write"),
    lang: Optional[str] = typer.Option(None, "--lang", "-l", help="Language code (default: from config)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Timeout for waiting for tag (seconds)"),
):
    """
    Write text to an NFC tag as an NDEF text record.

    Blank tags are formatted. The tag stays rewritable.
    """
    if not text:
        console.print("[red]Enter some text to write[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold cyan]Writing NFC Tag[/bold cyan]")
    console.print(f"Characters: [green]{len(text)}[/green]\n")

    application = get_app()
    timeout = timeout or application.config.tag_timeout

    try:
        with console.status("[bold yellow]Hold a tag to the reader..."):
            result = application.text_tags.write_text(text, language=lang, timeout=timeout)

        print_result(result)
        if not result.get("success"):
            raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(0)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        application.cleanup()


@app.command()
def read(
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Timeout for waiting for tag (seconds)"),
):
    """
    Read NDEF text records from an NFC tag.
    """
    console.print("\n[bold cyan]Reading NFC Tag[/bold cyan]")

    application = get_app()
    timeout = timeout or application.config.tag_timeout

    try:
        with console.status("[bold yellow]Hold a tag to the reader..."):
            result = application.text_tags.read_text(timeout=timeout)

        print_result(result)
        if not result.get("success"):
            raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(0)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        application.cleanup()


@app.command()
def info(
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Timeout for waiting for tag (seconds)"),
):
    """
    Show UID, technologies, NDEF size and writability of a tag.
    """
    console.print("\n[bold cyan]NFC Tag Information[/bold cyan]")

    application = get_app()
    timeout = timeout or application.config.tag_timeout

    try:
        with console.status("[bold yellow]Waiting for tag..."):
            result = application.text_tags.get_tag_info(timeout=timeout)

        console.print("\n[bold green]✓ Tag detected![/bold green]\n")
        print_result(result)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise typer.Exit(0)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        application.cleanup()


@app.command()
def watch(
    poll_interval: Optional[float] = typer.Option(None, "--poll-interval", help="Polling interval in seconds"),
):
    """
    Read every tag presented until Ctrl+C.
    """
    console.print("\n[bold cyan]Watching for tags[/bold cyan]")

    try:
        config = load_config()
        if poll_interval is not None:
            config.poll_interval = poll_interval

        console.print(f"Poll interval: [green]{config.poll_interval}s[/green]")
        console.print("\n[yellow]Listening for NFC tags... (Press Ctrl+C to stop)[/yellow]\n")

        application = Application(config)
        application.run_daemon(OperationRequest(OperationMode.READ), callback=print_result)

    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped by user[/yellow]")
        raise typer.Exit(0)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """Display version information."""
    from nfc_text import __version__

    console.print(Panel(
        f"[bold cyan]NFC Text[/bold cyan]\n"
        f"Version: [green]{__version__}[/green]\n"
        f"NDEF text records on NFC tags",
        title="Version Info",
        border_style="cyan",
    ))


def main():
    """Main CLI entry point."""
    try:
        app()
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
