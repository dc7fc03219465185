"""CLI entry point for relay-proxy."""

import sys
from datetime import datetime

from rich.console import Console
from rich.markup import escape

from app import create_app
from core.config import ENV_FILE, Config, load_config
from core.exceptions import ConfigurationError
from ui.console import ConsoleLogger
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    args = sys.argv[1:]

    if "--help" in args or "-h" in args:
        _print_help()
        return

    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {escape(str(e))}")
        console.print(f"[dim]Set TARGET_URL in the environment or {ENV_FILE}[/dim]")
        sys.exit(1)

    if "--config" in args:
        _print_config(config)
        return

    clear_logs(config.log_dir)
    if "--no-dashboard" in args:
        logger = ConsoleLogger(config)
        dashboard = None
    else:
        logger = dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, logger)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_level="warning",
        timeout_graceful_shutdown=config.shutdown_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    if dashboard:
        dashboard.start()
    else:
        console.print(
            f"Proxy listening on http://localhost:{config.port} | POST /proxy -> {config.target_url}"
        )
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", log_root=config.log_dir, port=config.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", log_root=config.log_dir, duration=str(duration))
        if dashboard:
            dashboard.stop()


def _print_config(config: Config):
    """Print the effective configuration."""
    console.print(f"[bold]Env file:[/bold] {ENV_FILE}")
    console.print(f"[bold]Target:[/bold]   {config.target_url}")
    console.print(f"[bold]Listen:[/bold]   {config.host}:{config.port}")
    console.print(f"[bold]Logs:[/bold]     {config.log_dir}")
    console.print(f"[bold]Debug:[/bold]    {config.debug}")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Relay Proxy[/bold cyan]

Forwards POST /proxy to TARGET_URL and relays the reply, including SSE streams.

[bold]Usage:[/bold]
    relay-proxy                   Start with live dashboard
    relay-proxy --no-dashboard    Start with plain console logging
    relay-proxy --config          Show effective configuration
    relay-proxy --help            Show this help

[bold]Environment:[/bold]
    TARGET_URL        Upstream endpoint (default: Perplexity chat completions)
    PORT              Listening port (default: 3000)
    HOST              Listening address (default: 0.0.0.0)
    DEBUG             Write a redacted JSON log per request
    LOG_DIR           Log directory (default: ./logs)
    SHUTDOWN_TIMEOUT  Seconds to drain in-flight requests on shutdown
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
