from __future__ import annotations

from typing import Optional, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.fuzzy import Matcher
from textual.widgets import Input, OptionList, Static
from textual.widgets.option_list import Option


class SelectionCancelled(Exception):
    pass


def rank_matches(items: Sequence[str], query: str) -> list[int]:
    """Indices of ``items`` matching ``query``, best match first.

    An empty query keeps every item in its original order. Ties keep input
    order.
    """
    query = query.strip()
    if not query:
        return list(range(len(items)))
    matcher = Matcher(query)
    scored: list[tuple[float, int]] = []
    for index, item in enumerate(items):
        score = matcher.match(item)
        if score > 0:
            scored.append((score, index))
    scored.sort(key=lambda pair: (-pair[0], pair[1]))
    return [index for _score, index in scored]


class FuzzySelect(App[Optional[int]]):
    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("ctrl+c", "cancel", "Cancel", show=False, priority=True),
        Binding("up", "cursor_up", "Up", show=False),
        Binding("down", "cursor_down", "Down", show=False),
    ]

    CSS = """
    Screen {
        height: auto;
    }

    #select-box {
        height: auto;
        padding: 0 1;
    }

    #select-title {
        width: 100%;
        color: $text-muted;
    }

    #select-query {
        width: 100%;
    }

    #select-options {
        height: auto;
        max-height: 12;
        border: none;
    }

    #select-status {
        width: 100%;
        color: $text-muted;
        text-style: dim;
    }
    """

    def __init__(
        self,
        items: Sequence[str],
        default: int = 0,
        title: Optional[str] = None,
    ) -> None:
        super().__init__()
        self._items = list(items)
        self._default = default if 0 <= default < len(self._items) else 0
        self._title = title
        self._visible: list[int] = []

    def compose(self) -> ComposeResult:
        with Vertical(id="select-box"):
            if self._title:
                yield Static(self._title, id="select-title", markup=False)
            yield Input(placeholder="type to filter", id="select-query")
            yield OptionList(id="select-options")
            yield Static("", id="select-status", markup=False)

    @property
    def option_list(self) -> OptionList:
        return self.query_one("#select-options", OptionList)

    def on_mount(self) -> None:
        self.option_list.can_focus = False
        self._refresh_options("")
        self.query_one("#select-query", Input).focus()

    def _refresh_options(self, query: str) -> None:
        self._visible = rank_matches(self._items, query)
        self.option_list.clear_options()
        if query.strip():
            matcher = Matcher(query.strip())
            prompts = [
                matcher.highlight(self._items[index]) for index in self._visible
            ]
        else:
            prompts = [Text(self._items[index]) for index in self._visible]
        self.option_list.add_options(
            [
                Option(prompt, id=str(index))
                for prompt, index in zip(prompts, self._visible)
            ]
        )
        if not self._visible:
            self.option_list.highlighted = None
        elif not query.strip():
            self.option_list.highlighted = self._default
        else:
            self.option_list.highlighted = 0
        status = f"{len(self._visible)}/{len(self._items)}"
        self.query_one("#select-status", Static).update(status)

    def on_input_changed(self, event: Input.Changed) -> None:
        self._refresh_options(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._submit()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option.id is not None:
            self.exit(int(event.option.id))

    def _submit(self) -> None:
        highlighted = self.option_list.highlighted
        if highlighted is None or not (0 <= highlighted < len(self._visible)):
            return
        self.exit(self._visible[highlighted])

    def action_cursor_up(self) -> None:
        self.option_list.action_cursor_up()

    def action_cursor_down(self) -> None:
        self.option_list.action_cursor_down()

    def action_cancel(self) -> None:
        self.exit(None)


def fuzzy_select(
    items: Sequence[str], default: int = 0, title: Optional[str] = None
) -> int:
    """Block until the operator picks one of ``items``; return its index."""
    if not items:
        raise ValueError("nothing to select from")
    app = FuzzySelect(items, default=default, title=title)
    result = app.run(inline=True)
    if result is None:
        raise SelectionCancelled()
    return result
