"""Main Textual app for the tokenscope dashboard."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Footer, Static

from adapters.sqlite_storage import SQLiteTokenStore

from .constants import ACCENT
from .tabs.tokens import TokensTab


class TokenDashboardApp(App):
    """Read-only dashboard over the token store."""

    BINDINGS = [
        ("r", "refresh", "Refresh"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #0f1a21;
        color: #e8eef5;
    }

    #header {
        height: 5;
        padding: 1 4;
        border-bottom: solid #2a3a46;
    }

    #header-left, #header-right {
        width: 1fr;
    }

    #header-right {
        content-align: right top;
        text-align: right;
    }

    #title {
        text-style: bold;
    }

    .subtle {
        color: #c6d2dd;
    }

    #tokens-panel {
        padding: 0 2;
    }

    #tokens-title {
        text-style: bold;
        padding: 1 0;
    }
    """

    def __init__(self, store: SQLiteTokenStore, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._store = store

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static("score = security + smart money + trending + hype + calls + hot + volume", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static(f"db: {Path(self._store.db_path).name}", classes="subtle")
        yield TokensTab(self._store, id="tokens")
        yield Footer()

    def action_refresh(self) -> None:
        self.query_one(TokensTab).load_tokens()

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("TOKEN", ACCENT),
            ("SCOPE > Dashboard", "bold"),
        )
