"""Tokens tab for browsing and exporting the scored token table."""

from __future__ import annotations

import csv
import json
import sqlite3
from datetime import datetime
from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static

from core.ports import TokenStorePort

from ..constants import EXPORTS_DIR, REFRESH_SECONDS

COLUMNS = [
    ("name", "tokenName", 18),
    ("ticker", "ticker", 10),
    ("security", "securityScore", 9),
    ("smart $", "smartMoneyBuys", 8),
    ("early", "earlyTrending", 6),
    ("hype", "hype", 7),
    ("calls", "totalCalls", 6),
    ("dex hot", "dexscreenerHot", 8),
    ("volume", "highVolume", 7),
    ("score", "score", 6),
    ("address", "contractAddress", 46),
]


class TokensTab(Container):
    """Tokens ordered by score, refreshed periodically, exportable to JSON/CSV."""

    def __init__(self, store: TokenStorePort, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._store = store
        self._rows: list[dict[str, Any]] = []
        self._table_ready = False

    def compose(self):
        with Vertical(id="tokens-panel"):
            yield Static("Tokens", id="tokens-title")
            yield DataTable(id="tokens-table", cursor_type="row")
            with Horizontal(id="tokens-actions"):
                yield Button("Refresh", id="refresh", variant="primary")
                yield Button("Export JSON", id="export-json", variant="success")
                yield Button("Export CSV", id="export-csv")
            yield Static("", id="tokens-output")

    def on_mount(self) -> None:
        table = self.query_one("#tokens-table", DataTable)
        for label, key, width in COLUMNS:
            table.add_column(label, key=key, width=width)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self.query_one("#tokens-actions").styles.height = 3
        self._table_ready = True
        self.load_tokens()
        self.set_interval(REFRESH_SECONDS, self.load_tokens)

    @on(Button.Pressed, "#refresh")
    def _on_refresh(self) -> None:
        self.load_tokens()

    @on(Button.Pressed, "#export-json")
    def _on_export_json(self) -> None:
        self._export_rows("json")

    @on(Button.Pressed, "#export-csv")
    def _on_export_csv(self) -> None:
        self._export_rows("csv")

    def load_tokens(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#tokens-table", DataTable)
        table.clear()
        try:
            records = self._store.list_all_ordered_by_score_desc()
        except sqlite3.Error as exc:
            self._rows = []
            self._set_output(f"db error: {exc}")
            return

        self._rows = [record.to_dict() for record in records]
        for row in self._rows:
            table.add_row(
                *(self._display(row[key]) for _, key, _ in COLUMNS),
                key=row["contractAddress"],
            )
        stamp = datetime.now().strftime("%H:%M:%S")
        self._set_output(f"loaded {len(self._rows)} tokens at {stamp}")

    def _export_rows(self, fmt: str) -> None:
        if not self._rows:
            self._set_output("No tokens to export.")
            return
        EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = EXPORTS_DIR / f"tokens-{timestamp}.{fmt}"
        try:
            if fmt == "json":
                path.write_text(json.dumps(self._rows, indent=2, ensure_ascii=False), encoding="utf-8")
            else:
                fieldnames = list(self._rows[0].keys())
                with path.open("w", encoding="utf-8", newline="") as handle:
                    writer = csv.DictWriter(handle, fieldnames=fieldnames)
                    writer.writeheader()
                    writer.writerows(self._rows)
            self._set_output(f"exported {len(self._rows)} tokens to {path}")
        except OSError as exc:
            self._set_output(f"export failed: {exc.strerror or exc}")

    def _set_output(self, message: str) -> None:
        self.query_one("#tokens-output", Static).update(message)

    @staticmethod
    def _display(value: Any) -> str:
        if value is None:
            return "N/A"
        return str(value)
