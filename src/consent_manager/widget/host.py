"""Host page abstraction for the script loader.

The loader never touches a browser directly. It talks to a ``HostPage``:
script lookup, iframe creation, message listener registration, custom
events and a named global. ``Document`` is the in-memory implementation
used by tests and by headless embeddings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol
from urllib.parse import urlsplit

from consent_manager.widget.messages import MessageEvent

MessageListener = Callable[[MessageEvent], None]


def _dataset_key(attribute: str) -> str:
    """``data-template-id`` → ``templateId`` (DOM dataset naming)."""
    head, *rest = attribute[len("data-"):].split("-")
    return head + "".join(part.capitalize() for part in rest)


@dataclass
class ScriptElement:
    src: str | None = None
    dataset: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_attributes(cls, src: str | None = None, **attributes: str) -> ScriptElement:
        """Build from HTML attribute names, e.g. ``**{"data-template-id": "t1"}``."""
        dataset = {
            _dataset_key(name): value
            for name, value in attributes.items()
            if name.startswith("data-")
        }
        return cls(src=src, dataset=dataset)


@dataclass
class IFrameElement:
    src: str = ""
    style: dict[str, str] = field(default_factory=dict)
    attributes: dict[str, str] = field(default_factory=dict)

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    @property
    def visible(self) -> bool:
        return self.style.get("display") != "none"


@dataclass(frozen=True)
class Location:
    protocol: str
    hostname: str
    origin: str

    @classmethod
    def from_url(cls, url: str) -> Location:
        parts = urlsplit(url)
        return cls(
            protocol=f"{parts.scheme}:",
            hostname=parts.hostname or "",
            origin=f"{parts.scheme}://{parts.netloc}",
        )


@dataclass(frozen=True)
class CustomEvent:
    name: str
    detail: dict[str, Any]


class HostPage(Protocol):
    """What the loader needs from the embedding page."""

    location: Location
    current_script: ScriptElement | None

    def query_scripts(self) -> list[ScriptElement]: ...

    def create_iframe(self) -> IFrameElement: ...

    def append_to_body(self, element: IFrameElement) -> None: ...

    def add_message_listener(self, listener: MessageListener) -> None: ...

    def dispatch_event(self, event: CustomEvent) -> None: ...

    def expose(self, name: str, value: Any) -> None: ...


class Document:
    """In-memory host page."""

    def __init__(
        self,
        url: str = "https://example.com/",
        scripts: list[ScriptElement] | None = None,
        current_script: ScriptElement | None = None,
    ) -> None:
        self.location = Location.from_url(url)
        self.scripts: list[ScriptElement] = list(scripts or [])
        self.current_script = current_script
        self.body: list[IFrameElement] = []
        self.events: list[CustomEvent] = []
        self.globals: dict[str, Any] = {}
        self._listeners: list[MessageListener] = []

    # ── HostPage ──────────────────────────────────────────────────────────────

    def query_scripts(self) -> list[ScriptElement]:
        return list(self.scripts)

    def create_iframe(self) -> IFrameElement:
        return IFrameElement()

    def append_to_body(self, element: IFrameElement) -> None:
        self.body.append(element)

    def add_message_listener(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def dispatch_event(self, event: CustomEvent) -> None:
        self.events.append(event)

    def expose(self, name: str, value: Any) -> None:
        self.globals[name] = value

    # ── Test/embedding helpers ────────────────────────────────────────────────

    @property
    def iframes(self) -> list[IFrameElement]:
        return [e for e in self.body if isinstance(e, IFrameElement)]

    def post_message(self, event: MessageEvent) -> None:
        """Deliver a message to every registered window listener, in order."""
        for listener in list(self._listeners):
            listener(event)

    def events_named(self, name: str) -> list[CustomEvent]:
        return [e for e in self.events if e.name == name]
