"""Status pane showing shared playback state and call status."""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text
from textual.app import ComposeResult
from textual.widget import Widget
from textual.widgets import Static

from callboard.services.call_status import CallStatus
from callboard.services.playback_state_store import PlaybackState
from callboard.utils.time_format import format_age, format_seconds

LABEL_STYLE = "bold #F2C94C"
CALL_STYLE = "bold #FF5A36"


@dataclass(frozen=True)
class BoardSnapshot:
    state: PlaybackState
    authority: str | None
    surface: str | None
    call_status: CallStatus
    chime_enabled: bool
    now: float


def describe_playback(state: PlaybackState) -> str:
    verb = "playing" if state.is_playing else "stopped"
    return f"{format_seconds(state.current_time)} {verb} ({state.player_state.name})"


def render_snapshot(snapshot: BoardSnapshot, notice: str | None = None) -> Text:
    text = Text()
    if notice:
        text.append("Notice: ", style=CALL_STYLE)
        text.append(notice)
        text.append("\n")
    text.append("Playback: ", style=LABEL_STYLE)
    text.append(describe_playback(snapshot.state))
    text.append(" | updated ")
    text.append(format_age(snapshot.now - snapshot.state.last_update))
    text.append("\n")
    text.append("Surface: ", style=LABEL_STYLE)
    text.append(snapshot.surface or "none")
    text.append(" | ")
    text.append("Authority: ", style=LABEL_STYLE)
    text.append(snapshot.authority or "open")
    text.append("\n")
    text.append("Call: ", style=LABEL_STYLE)
    if snapshot.call_status == "calling":
        text.append("CALLING", style=CALL_STYLE)
    else:
        text.append("idle")
    text.append(" | ")
    text.append("Chime: ", style=LABEL_STYLE)
    text.append("on" if snapshot.chime_enabled else "off")
    return text


class StatusPane(Widget):
    DEFAULT_CSS = """
    #status-body {
        height: auto;
        width: 1fr;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._body = Static("Starting...", id="status-body")
        self._notice: str | None = None
        self._snapshot: BoardSnapshot | None = None

    def compose(self) -> ComposeResult:
        yield self._body

    @property
    def snapshot(self) -> BoardSnapshot | None:
        return self._snapshot

    def set_notice(self, notice: str | None) -> None:
        self._notice = notice.strip() if notice else None
        if self._snapshot is not None:
            self.update_snapshot(self._snapshot)

    def update_snapshot(self, snapshot: BoardSnapshot) -> None:
        self._snapshot = snapshot
        self._body.update(render_snapshot(snapshot, self._notice))
