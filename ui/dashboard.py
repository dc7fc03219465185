"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import write_cli_log

console = Console()


class ResponseInfo:
    """Info about a single relayed response."""

    def __init__(self, status: int, streaming: bool, duration: float, timestamp: datetime):
        self.status = status
        self.mode = "stream" if streaming else "buffered"
        self.duration_ms = int(duration * 1000)
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing recent upstream replies and errors."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[ResponseInfo] = []
        self._max_recent = 10
        self._counts = {"requests": 0, "streams": 0, "errors": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_request(self, method: str, path: str, *, streaming: bool = False) -> None:
        """Count an inbound request."""
        with self._lock:
            self._counts["requests"] += 1
            if streaming:
                self._counts["streams"] += 1
            self._refresh()
            write_cli_log(
                "REQUEST",
                f"{method} {path}",
                log_root=self.config.log_dir,
                stream=streaming,
            )

    def log_response(self, status: int, *, streaming: bool, duration: float) -> None:
        """Record an upstream reply."""
        with self._lock:
            info = ResponseInfo(status, streaming, duration, datetime.now())
            self._recent.insert(0, info)
            self._recent = self._recent[: self._max_recent]
            self._refresh()
            write_cli_log(
                "UPSTREAM",
                str(status),
                log_root=self.config.log_dir,
                mode=info.mode,
                ms=info.duration_ms,
            )

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            self._counts["errors"] += 1
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log(
                "ERROR",
                message[:200],
                log_root=self.config.log_dir,
                route=route,
                status=status,
            )

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_recent_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Relay Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Requests: {self._counts['requests']}", style="blue")
        stats.append("  |  ")
        stats.append(f"Streams: {self._counts['streams']}", style="magenta")
        stats.append("  |  ")
        stats.append(f"Errors: {self._counts['errors']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_recent_panel(self) -> Panel:
        """Build the recent responses panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Status", width=6)
            table.add_column("Mode", width=8)
            table.add_column("Duration", justify="right")

            for info in self._recent:
                style = "green" if info.status < 400 else "yellow" if info.status < 500 else "red"
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    Text(str(info.status), style=style),
                    info.mode,
                    f"{info.duration_ms} ms",
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(
            content,
            title=f"[blue]Upstream[/blue] [dim]{self.config.target_url}[/dim]",
            border_style="blue",
        )

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"POST http://localhost:{self.config.port}/proxy to forward requests",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
