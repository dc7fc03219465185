"""Plain console logger used when the live dashboard is disabled."""

from datetime import datetime

from rich.console import Console
from rich.markup import escape

from core.config import Config
from ui.log_utils import write_cli_log

console = Console()


class ConsoleLogger:
    """Print one line per proxy event."""

    def __init__(self, config: Config):
        self.config = config

    def log_request(self, method: str, path: str, *, streaming: bool = False) -> None:
        mode = " [magenta](stream)[/magenta]" if streaming else ""
        console.print(f"[dim]{_now()}[/dim] [blue]{method}[/blue] {path}{mode}")
        write_cli_log("REQUEST", f"{method} {path}", log_root=self.config.log_dir, stream=streaming)

    def log_response(self, status: int, *, streaming: bool, duration: float) -> None:
        style = "green" if status < 400 else "yellow" if status < 500 else "red"
        ms = int(duration * 1000)
        console.print(f"[dim]{_now()}[/dim] [{style}]{status}[/{style}] upstream in {ms} ms")
        write_cli_log(
            "UPSTREAM",
            str(status),
            log_root=self.config.log_dir,
            mode="stream" if streaming else "buffered",
            ms=ms,
        )

    def log_error(self, route: str, status: int, message: str) -> None:
        console.print(f"[dim]{_now()}[/dim] [red][ERROR][/red] {route} {status}: {escape(message)}")
        write_cli_log("ERROR", message[:200], log_root=self.config.log_dir, route=route, status=status)


def _now() -> str:
    return datetime.now().strftime("%H:%M:%S")
