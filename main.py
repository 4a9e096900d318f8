#!/usr/bin/env python3
"""
Turon Chat Proxy - rule-based answers with a hosted language model fallback
"""

import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel

from turon_proxy.config import (
    DEFAULT_CONFIG_PATH,
    ProxyConfig,
    load_config,
    load_env_file,
    setup_logging,
)
from turon_proxy.errors import ConfigError, ProxyError
from turon_proxy.kb.knowledge_base import KnowledgeBase
from turon_proxy.kb.models import Reply
from turon_proxy.service import ChatService

# Setup logger
logger = logging.getLogger(__name__)

console = Console()


def display_reply(reply: Reply):
    """Display a reply in a formatted way."""
    style = "green" if reply.source == "local" else "blue"
    console.print(Panel(
        reply.text,
        title=f"[bold {style}]Javob ({reply.source})[/bold {style}]",
        border_style=style,
    ))


def display_error(error: ProxyError):
    """Display a proxy error with its diagnostic detail."""
    console.print(f"[red]❌ {error.kind}: {escape(error.message)}[/red]")
    if error.detail is not None:
        console.print(f"[dim]{escape(str(error.detail))}[/dim]")


async def ask_once(service: ChatService, message: str) -> Reply:
    try:
        return await service.handle(message)
    finally:
        await service.aclose()


@click.group()
@click.option('--config', '-c', default=DEFAULT_CONFIG_PATH, help='Configuration file path')
@click.option('--debug', '-d', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config, debug):
    """Turon Chat Proxy CLI."""
    # Load environment variables first
    load_env_file()

    ctx.ensure_object(dict)
    try:
        raw_config = load_config(config)
    except ConfigError as e:
        console.print(f"[red]❌ {escape(e.message)}[/red]")
        sys.exit(1)

    if debug:
        raw_config.setdefault("logging", {})["level"] = "DEBUG"

    setup_logging(raw_config)
    ctx.obj['config'] = ProxyConfig.from_dict(raw_config)
    ctx.obj['debug'] = debug


@cli.command()
@click.option('--host', '-h', default=None, help='Interface to bind (overrides config)')
@click.option('--port', '-p', type=int, default=None, help='Port to listen on (overrides config)')
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP proxy."""
    import uvicorn

    from turon_proxy.api.app import create_app

    config = ctx.obj['config']
    app = create_app(config)

    host = host or config.server.host
    port = port or config.server.port
    logger.info(f"Server listening on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.command()
@click.argument('message')
@click.pass_context
def ask(ctx, message):
    """Answer a single question the same way the HTTP endpoint would."""
    service = ChatService(ctx.obj['config'])

    try:
        reply = asyncio.run(ask_once(service, message))
    except ProxyError as e:
        display_error(e)
        sys.exit(1)

    display_reply(reply)


@cli.command()
@click.pass_context
def facts(ctx):
    """Show the knowledge base used for quick answers."""
    kb_facts = KnowledgeBase(ctx.obj['config'].kb).facts

    table = Table(title=kb_facts.name)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Manzil", kb_facts.address)
    table.add_row("Telefon", kb_facts.phone)
    table.add_row("Ish vaqti", kb_facts.hours)
    for course in kb_facts.courses:
        table.add_row("Kurs", course)

    console.print(table)


@cli.command('check-config')
@click.pass_context
def check_config(ctx):
    """Show which remote settings are configured."""
    replicate = ctx.obj['config'].replicate
    missing = replicate.missing_settings()

    table = Table(title="Replicate Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("API token", "❌ missing" if "api_token" in missing else "✅ set")
    table.add_row("Model version", replicate.model_version or "❌ missing")
    table.add_row("Base URL", replicate.base_url)
    table.add_row("Auth header", f"{replicate.auth_header}: {replicate.auth_scheme} ...")
    table.add_row("Poll", f"{replicate.max_poll_attempts} x {replicate.poll_interval}s")
    table.add_row("Submit timeout", f"{replicate.submit_timeout}s")

    console.print(table)

    if missing:
        sys.exit(1)


@cli.command()
@click.pass_context
def interactive(ctx):
    """Start interactive question mode."""
    service = ChatService(ctx.obj['config'])

    console.print(Panel(
        "[bold blue]Turon O'quv Markazi chatbot[/bold blue]\n"
        "Kurslar, jadval, manzil yoki aloqa haqida so'rang.\n"
        "Type 'quit' to exit.",
        border_style="blue"
    ))

    async def run():
        try:
            while True:
                message = await asyncio.to_thread(click.prompt, "\nSavol", default="", show_default=False)

                if message.lower() in ['quit', 'exit', 'q']:
                    break
                if not message.strip():
                    continue

                try:
                    display_reply(await service.handle(message))
                except ProxyError as e:
                    display_error(e)
        finally:
            await service.aclose()

    try:
        asyncio.run(run())
    except (KeyboardInterrupt, click.Abort):
        console.print("\n[yellow]Exiting...[/yellow]")


if __name__ == "__main__":
    cli()
