from __future__ import annotations

import secrets
import threading
from collections import OrderedDict
from dataclasses import dataclass, field

from flask import current_app, session

from .config import DEFAULT_WATERMARK_TEXT
from .media import ImageHandle
from .services import Ack, DetectionResult
from .watermark import WatermarkResult

TABS = ("detect", "watermark", "report")
STATE_EXTENSION = "truthlens.state"


@dataclass
class DetectFlow:
    image: ImageHandle | None = None
    result: DetectionResult | None = None
    loading: bool = False

    def set_image(self, image: ImageHandle) -> None:
        self.image = image

    def clear_result(self) -> None:
        self.result = None

    def clear(self) -> None:
        self.image = None
        self.result = None
        self.loading = False


@dataclass
class WatermarkFlow:
    text: str = DEFAULT_WATERMARK_TEXT
    image: ImageHandle | None = None
    result: WatermarkResult | None = None
    loading: bool = False

    def set_image(self, image: ImageHandle) -> None:
        self.image = image

    def clear_result(self) -> None:
        self.result = None

    @property
    def can_apply(self) -> bool:
        return self.image is not None and bool(self.text.strip()) and not self.loading

    def clear(self) -> None:
        self.image = None
        self.result = None
        self.loading = False


@dataclass
class ReportFlow:
    email: str = ""
    description: str = ""
    image: ImageHandle | None = None
    submitted: bool = False
    ack: Ack | None = None
    loading: bool = False

    def set_image(self, image: ImageHandle) -> None:
        self.image = image

    def reset(self) -> None:
        self.email = ""
        self.description = ""
        self.image = None
        self.submitted = False
        self.ack = None
        self.loading = False


@dataclass
class DemoState:
    """Everything the page shows for one browser session."""

    active_tab: str = "detect"
    detect: DetectFlow = field(default_factory=DetectFlow)
    watermark: WatermarkFlow = field(default_factory=WatermarkFlow)
    report: ReportFlow = field(default_factory=ReportFlow)

    def select_tab(self, tab: str | None) -> None:
        if tab in TABS:
            self.active_tab = tab


class SessionStateStore:
    """In-memory ``DemoState`` per session id, least recently used evicted first.

    Each state holds up to three uploads of ``MAX_UPLOAD_BYTES`` plus a PNG result,
    which for a well compressed JPEG source can be several times the upload. Budget
    ``max_sessions * (3 * MAX_UPLOAD_BYTES + largest PNG)``: at the defaults 64
    sessions need 1 GB or more in the worst case. Lower ``MAX_SESSIONS`` on small hosts.
    """

    def __init__(self, *, max_sessions: int = 64, default_text: str = DEFAULT_WATERMARK_TEXT) -> None:
        self.max_sessions = max_sessions
        self.default_text = default_text
        self._states: OrderedDict[str, DemoState] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, sid: str) -> bool:
        return sid in self._states

    def new_state(self) -> DemoState:
        return DemoState(watermark=WatermarkFlow(text=self.default_text))

    def peek(self, sid: str) -> DemoState | None:
        with self._lock:
            state = self._states.get(sid)
            if state is not None:
                self._states.move_to_end(sid)
            return state

    def get(self, sid: str) -> DemoState:
        with self._lock:
            state = self._states.get(sid)
            if state is None:
                state = self.new_state()
                self._states[sid] = state
                while len(self._states) > self.max_sessions:
                    self._states.popitem(last=False)
            else:
                self._states.move_to_end(sid)
            return state

    def discard(self, sid: str) -> None:
        with self._lock:
            self._states.pop(sid, None)


def session_id() -> str:
    sid = session.get("sid")
    if not sid:
        sid = secrets.token_urlsafe(16)
        session["sid"] = sid
        session.permanent = True
    return sid


def current_state(*, create: bool = True) -> DemoState | None:
    """The caller's ``DemoState``; with ``create=False`` nothing is allocated."""
    store: SessionStateStore = current_app.extensions[STATE_EXTENSION]
    if not create:
        sid = session.get("sid")
        return store.peek(sid) if sid else None
    return store.get(session_id())
