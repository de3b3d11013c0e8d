"""
Widgets - Rich renderables for the dashboard

- ColoredList: one coloured cell per test result, wrapped to the panel width
- StatefulList: list with a single, wrapping selection
"""

from typing import Callable, Generic, Iterator, List, Optional, TypeVar, Union

from rich.console import Console, ConsoleOptions, RenderResult
from rich.segment import Segment
from rich.style import Style
from rich.text import Text

T = TypeVar("T")

HIGHLIGHT_COLOR = "#33467c"
ELLIPSIS = "..."


class ColoredList:
    """
    Grid of coloured cells, one per result.

    When there are more cells than room, the last three cells of the area
    show '...' instead.
    """

    def __init__(self, colors: List[str]):
        self.colors = colors

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        width = max(1, options.max_width)
        if options.height is not None:
            height = options.height
        else:
            height = max(1, -(-len(self.colors) // width))
        available = width * height

        cells = [Segment(" ", Style(bgcolor=c)) for c in self.colors]
        if available < len(cells):
            keep = max(0, available - len(ELLIPSIS))
            cells = cells[:keep] + [Segment(ch) for ch in ELLIPSIS[:available - keep]]

        for start in range(0, len(cells), width):
            yield from cells[start:start + width]
            yield Segment.line()


class _ListView:
    """Snapshot of a StatefulList, scrolled so the selection is visible"""

    def __init__(self, items: List[Text], selected: Optional[int], highlight_style: Style):
        self.items = items
        self.selected = selected
        self.highlight_style = highlight_style

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        width = options.max_width
        height = options.height if options.height is not None else len(self.items)

        offset = 0
        if self.selected is not None and height > 0 and self.selected >= height:
            offset = self.selected - height + 1

        lines = []
        for idx in range(offset, min(len(self.items), offset + height)):
            line = self.items[idx].copy()
            line.truncate(width, overflow="ellipsis", pad=idx == self.selected)
            if idx == self.selected:
                line.stylize(self.highlight_style)
            lines.append(line)

        view = Text("\n").join(lines)
        view.no_wrap = True
        view.overflow = "ellipsis"
        yield view


class StatefulList(Generic[T]):
    """
    Ordered items with at most one selected index.

    next() and previous() wrap around and are no-ops on an empty list.
    """

    def __init__(self, items: Optional[List[T]] = None):
        self._items: List[T] = list(items or [])
        self._selected: Optional[int] = None

    @classmethod
    def empty(cls) -> "StatefulList[T]":
        return cls()

    @property
    def items(self) -> List[T]:
        return list(self._items)

    @property
    def selected(self) -> Optional[int]:
        return self._selected

    @property
    def selected_item(self) -> Optional[T]:
        if self._selected is None:
            return None
        return self._items[self._selected]

    def replace(self, items: List[T]) -> None:
        """Swap the backing items and drop the selection"""
        self._items = list(items)
        self._selected = None

    def next(self) -> None:
        if not self._items:
            return
        if self._selected is None:
            self._selected = 0
        else:
            self._selected = (self._selected + 1) % len(self._items)

    def previous(self) -> None:
        if not self._items:
            return
        if self._selected is None:
            self._selected = 0
        else:
            self._selected = (self._selected - 1 + len(self._items)) % len(self._items)

    def unselect(self) -> None:
        self._selected = None

    def render(self,
               make_item: Callable[[T], Union[str, Text]],
               highlight_color: str = HIGHLIGHT_COLOR) -> _ListView:
        """Project every item to a line; the selection is highlighted"""
        lines = []
        for item in self._items:
            line = make_item(item)
            lines.append(Text(line) if isinstance(line, str) else line)
        return _ListView(lines, self._selected, Style(bgcolor=highlight_color))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)
