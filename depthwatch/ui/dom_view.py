"""
Depth ladder + RSI TUI using Textual.

Displays:
- Top: status bar (symbol, best bid/ask, spread, last price, update rate)
- Middle: price ladder, asks above the spread and bids below, with volume bars
- Bottom: RSI value and signal

Performance notes:
- The render tick pulls from MarketState on a fixed interval (~60 FPS);
  it never waits on the feed
- Table building is a pure function of the DepthSnapshot
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import RenderableType
from rich.style import Style
from rich.table import Table
from rich.text import Text

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import Footer, Static

from ..types import Signal

if TYPE_CHECKING:
    from ..engine.market import MarketState
    from ..types import DepthSnapshot, PriceLevel

# Color scheme (dark theme)
BID_COLOR = "#22c55e"      # Green
ASK_COLOR = "#ef4444"      # Red
PRICE_COLOR = "#f8fafc"
HEADER_COLOR = "#94a3b8"
BAR_BG = "#1e293b"
BAR_WIDTH = 16

SIGNAL_STYLES = {
    Signal.BUY: f"bold {BID_COLOR}",
    Signal.SELL: f"bold {ASK_COLOR}",
    Signal.HOLD: "bold yellow",
}


def format_qty(qty: float) -> str:
    """Format quantity for display."""
    if qty >= 1000:
        return f"{qty/1000:.1f}K"
    elif qty >= 1:
        return f"{qty:.1f}"
    else:
        return f"{qty:.3f}"


def make_bar(value: float, max_value: float, width: int, color: str) -> Text:
    """Create a horizontal bar using block characters."""
    if max_value <= 0:
        return Text(" " * width)

    fill_ratio = min(1.0, value / max_value)
    fill_width = int(fill_ratio * width)

    bar = "█" * fill_width + " " * (width - fill_width)
    return Text(bar, style=Style(color=color, bgcolor=BAR_BG))


def build_ladder(snap: DepthSnapshot) -> Table:
    """
    Build the price ladder: asks descending down to the best ask, then bids
    descending from the best bid.
    """
    levels: list[PriceLevel] = list(snap.asks) + list(snap.bids)
    max_vol = max((l.volume for l in levels), default=0.0)

    table = Table(
        show_header=True,
        header_style=HEADER_COLOR,
        box=None,
        padding=(0, 1),
        collapse_padding=True,
    )
    table.add_column("Bid Vol", justify="right", width=10)
    table.add_column("Bid Bar", justify="right", width=BAR_WIDTH, no_wrap=True)
    table.add_column("Price", justify="center", width=12)
    table.add_column("Ask Bar", justify="left", width=BAR_WIDTH, no_wrap=True)
    table.add_column("Ask Vol", justify="left", width=10)

    blank = Text("")
    for level in reversed(snap.asks):
        table.add_row(
            blank,
            blank,
            Text(f"{level.price:.2f}", style=ASK_COLOR),
            make_bar(level.volume, max_vol, BAR_WIDTH, ASK_COLOR),
            Text(format_qty(level.volume), style=ASK_COLOR),
        )

    for level in snap.bids:
        table.add_row(
            Text(format_qty(level.volume), style=BID_COLOR),
            make_bar(level.volume, max_vol, BAR_WIDTH, BID_COLOR),
            Text(f"{level.price:.2f}", style=BID_COLOR),
            blank,
            blank,
        )

    return table


def format_reading(snap: DepthSnapshot) -> Text:
    """RSI line: value + signal, or the seeding progress."""
    if snap.reading is None:
        return Text(f"RSI: seeding ({snap.samples_needed} samples to go)", style="dim")

    reading = snap.reading
    result = Text()
    result.append("RSI: ", style="dim")
    result.append(f"{reading.value:.2f}", style="cyan")
    result.append("  Signal: ", style="dim")
    result.append(reading.signal.value.upper(), style=SIGNAL_STYLES[reading.signal])
    return result


def format_status(snap: DepthSnapshot) -> Text:
    """Status line for the top bar."""
    last = f"{snap.last_price:.2f}" if snap.last_price is not None else "-"
    link = Text("LIVE", style="bold green") if snap.connected else Text("DISCONNECTED", style="bold red")

    parts = [
        Text(f" {snap.symbol} ", style="bold white on #1e40af"),
        Text("  "),
        link,
        Text("  Bid: ", style="dim"),
        Text(f"{snap.best_bid:.2f}", style=BID_COLOR),
        Text("  Ask: ", style="dim"),
        Text(f"{snap.best_ask:.2f}", style=ASK_COLOR),
        Text("  Spread: ", style="dim"),
        Text(f"{snap.spread:.2f}", style="yellow"),
        Text("  Last: ", style="dim"),
        Text(last, style=PRICE_COLOR),
        Text("  │  ", style="dim"),
        Text("Updates/s: ", style="dim"),
        Text(f"{snap.updates_per_sec:.0f}", style="cyan"),
    ]

    result = Text()
    for p in parts:
        result.append(p)
    return result


class DepthTable(Static):
    """Price ladder widget."""

    DEFAULT_CSS = """
    DepthTable {
        width: 100%;
        height: 1fr;
    }
    """

    def __init__(self) -> None:
        super().__init__()
        self._snapshot: DepthSnapshot | None = None

    def update_snapshot(self, snapshot: DepthSnapshot) -> None:
        self._snapshot = snapshot
        self.refresh()

    def render(self) -> RenderableType:
        if self._snapshot is None:
            return Text("Waiting for data...", style="dim")
        if not self._snapshot.asks and not self._snapshot.bids:
            return Text("No levels", style="dim")
        return build_ladder(self._snapshot)


class StatusBar(Static):
    """Status bar showing symbol, top of book and feed health."""

    DEFAULT_CSS = """
    StatusBar {
        dock: top;
        height: 3;
        padding: 0 2;
        background: #0f172a;
    }
    """

    def __init__(self) -> None:
        super().__init__()
        self._snapshot: DepthSnapshot | None = None

    def update_snapshot(self, snapshot: DepthSnapshot) -> None:
        self._snapshot = snapshot
        self.refresh()

    def render(self) -> RenderableType:
        if self._snapshot is None:
            return Text("Connecting...", style="dim")
        return format_status(self._snapshot)


class RSIPanel(Static):
    """RSI value + signal."""

    DEFAULT_CSS = """
    RSIPanel {
        dock: bottom;
        height: 1;
        padding: 0 2;
    }
    """

    def __init__(self) -> None:
        super().__init__()
        self._snapshot: DepthSnapshot | None = None

    def update_snapshot(self, snapshot: DepthSnapshot) -> None:
        self._snapshot = snapshot
        self.refresh()

    def render(self) -> RenderableType:
        if self._snapshot is None:
            return Text("")
        return format_reading(self._snapshot)


class DepthApp(App):
    """Main depthwatch application."""

    CSS = """
    Screen {
        background: #0f172a;
    }

    #main-container {
        width: 100%;
        height: 100%;
        padding: 1 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reset_rate", "Reset Rate"),
    ]

    def __init__(self, state: MarketState, render_interval_ms: int = 16) -> None:
        super().__init__()
        self.state = state
        self.render_interval = render_interval_ms / 1000.0
        self._status_bar: StatusBar | None = None
        self._depth_table: DepthTable | None = None
        self._rsi_panel: RSIPanel | None = None

    def compose(self) -> ComposeResult:
        self._status_bar = StatusBar()
        self._depth_table = DepthTable()
        self._rsi_panel = RSIPanel()

        yield self._status_bar
        yield Container(self._depth_table, self._rsi_panel, id="main-container")
        yield Footer()

    def on_mount(self) -> None:
        """Start the render tick."""
        self.set_interval(self.render_interval, self._render_tick)

    def _render_tick(self) -> None:
        snapshot = self.state.tick()
        for widget in (self._status_bar, self._depth_table, self._rsi_panel):
            if widget:
                widget.update_snapshot(snapshot)

    def action_reset_rate(self) -> None:
        """Reset the update rate counters (bound to 'r' key)."""
        self.state.book.reset_perf_counters()


async def run_ui(state: MarketState, render_interval_ms: int = 16) -> None:
    """Run the TUI application."""
    app = DepthApp(state, render_interval_ms)
    await app.run_async()
