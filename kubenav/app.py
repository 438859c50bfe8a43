from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.widgets import Static, TextArea

from .config import Settings, configure_logging, load_settings
from .events import QUIT, Command, Event, FetchCommand, FetchCompleted, KeyPress, Resize
from .gateway import FetchGateway
from .kube import KubeError, KubeService
from .levels import Level, LogLevel, NamespaceLevel, SessionContext

logger = logging.getLogger(__name__)


class FetchFinished(Message):
    def __init__(self, completion: FetchCompleted) -> None:
        super().__init__()
        self.completion = completion


class KubeBrowser(App):
    CSS = """
    Screen {
        overflow: hidden;
    }

    #frame {
        width: 1fr;
        height: 1fr;
        padding: 0;
    }

    #log-view {
        width: 1fr;
        height: 1fr;
        border: none;
        padding: 0;
    }

    #frame.hidden,
    #log-view.hidden {
        display: none;
    }
    """

    # quit and back must reach the level even while the log view has focus
    BINDINGS = [
        Binding("ctrl+c", "relay_key('ctrl+c')", "Quit", show=False, priority=True),
        Binding("q", "relay_key('q')", "Quit", show=False, priority=True),
        Binding("h", "relay_key('h')", "Back", show=False, priority=True),
    ]

    def __init__(
        self,
        service: Optional[KubeService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self.service = service or KubeService(self.settings)
        self.gateway = FetchGateway(self.service)
        self.nav_context = SessionContext()
        self.level: Level = NamespaceLevel()
        self._quitting = False
        self._log_generation: Optional[int] = None

    def compose(self) -> ComposeResult:
        yield Static("", id="frame")
        yield TextArea(
            "",
            id="log-view",
            classes="hidden",
            read_only=True,
            show_cursor=False,
            soft_wrap=True,
        )

    def on_mount(self) -> None:
        self.frame_view = self.query_one("#frame", Static)
        self.log_view = self.query_one("#log-view", TextArea)
        self.nav_context.resize(self.size.width, self.size.height)
        self.level, command = self.level.init(self.nav_context)
        self._run_command(command)
        self._render_frame()

    def on_key(self, event: events.Key) -> None:
        self.route(KeyPress(event.key))

    def on_resize(self, event: events.Resize) -> None:
        self.route(Resize(event.size.width, event.size.height))

    def on_fetch_finished(self, message: FetchFinished) -> None:
        self.route(message.completion)

    def action_relay_key(self, key: str) -> None:
        self.route(KeyPress(key))

    def route(self, event: Event) -> None:
        if self._quitting:
            return
        if isinstance(event, Resize):
            self.nav_context.resize(event.width, event.height)
        elif isinstance(event, FetchCompleted):
            logger.debug("Completion %s #%s delivered", event.kind, event.generation)
        self.level, command = self.level.handle(event, self.nav_context)
        self._run_command(command)
        if not self._quitting:
            self._render_frame()

    def _run_command(self, command: Optional[Command]) -> None:
        if command is None:
            return
        if command is QUIT:
            self._quitting = True
            self.exit()
            return
        if isinstance(command, FetchCommand):
            self._issue_fetch(command)

    def _issue_fetch(self, command: FetchCommand) -> None:
        self.run_worker(
            self._fetch(command),
            name=f"fetch-{command.kind}-{command.generation}",
            group="fetch",
            exit_on_error=False,
        )

    async def _fetch(self, command: FetchCommand) -> None:
        completion = await self.gateway.resolve(command)
        self.post_message(FetchFinished(completion))

    def _focus_log_view(self) -> None:
        if not self.log_view.has_class("hidden"):
            self.set_focus(self.log_view)

    def _render_frame(self) -> None:
        if not hasattr(self, "frame_view"):
            return
        level = self.level
        if isinstance(level, LogLevel) and level.ready:
            if self._log_generation != level.generation:
                self._log_generation = level.generation
                self.log_view.load_text(level.content or "")
            self.frame_view.add_class("hidden")
            self.log_view.remove_class("hidden")
            if not self.log_view.has_focus:
                self.call_after_refresh(self._focus_log_view)
            return
        self._log_generation = None
        if self.log_view.has_focus:
            self.set_focus(None)
        self.log_view.add_class("hidden")
        self.frame_view.remove_class("hidden")
        self.frame_view.update(level.render(self.nav_context))


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Browse Kubernetes namespaces, pods, containers and logs"
    )
    parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings)
    service = KubeService(settings)
    try:
        context = service.check_connection()
    except KubeError as exc:
        logger.error("Startup failed: %s", exc)
        print(f"There's an error: {exc}", file=sys.stderr)
        return 1
    logger.info("Using Kubernetes context %s", context)

    app = KubeBrowser(service=service, settings=settings)
    try:
        app.run()
    except Exception as exc:
        logger.exception("Terminal session failed")
        print(f"There's an error: {exc}", file=sys.stderr)
        return 1
    return app.return_code or 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
