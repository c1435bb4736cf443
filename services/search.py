"""
Search over the current asset list.
SearchIndex is a pure substring matcher; SuggestionNavigator keeps the
autocomplete state (query, visible suggestions, selection cursor).
"""

import logging
from typing import Callable, List, Optional, Sequence

from models import Asset

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_LIMIT = 8
NO_SELECTION = -1


class SearchIndex:
    """
    Case-insensitive substring matching against asset name or symbol.
    Results keep the input order; nothing is re-ranked.
    """

    def __init__(self, limit: int = DEFAULT_SUGGESTION_LIMIT):
        self.limit = limit

    @staticmethod
    def matches(asset: Asset, query: str) -> bool:
        needle = query.lower()
        return needle in asset.name.lower() or needle in asset.symbol.lower()

    def filter(self, assets: Sequence[Asset], query: str) -> Sequence[Asset]:
        """All matching assets; the input itself when the query is empty."""
        if not query:
            return assets
        return [asset for asset in assets if self.matches(asset, query)]

    def suggest(self, assets: Sequence[Asset], query: str) -> List[Asset]:
        """First `limit` matches; empty until at least one character is typed."""
        if not query:
            return []
        suggestions = []
        for asset in assets:
            if self.matches(asset, query):
                suggestions.append(asset)
                if len(suggestions) >= self.limit:
                    break
        return suggestions


class SuggestionNavigator:
    """
    Selection cursor over the autocomplete list.

    The cursor is either NO_SELECTION (-1) or a valid index into the current
    suggestions. Directional keys saturate at both ends and never wrap.
    """

    def __init__(
        self,
        index: Optional[SearchIndex] = None,
        on_select: Optional[Callable[[Asset], None]] = None
    ):
        self.index = index or SearchIndex()
        self.on_select = on_select
        self.query = ""
        self.cursor = NO_SELECTION
        self.visible = False
        self.suggestions: List[Asset] = []
        self._assets: Sequence[Asset] = ()

    @property
    def shown(self) -> bool:
        """Whether the suggestion dropdown should be rendered."""
        return self.visible and bool(self.suggestions)

    @property
    def assets(self) -> Sequence[Asset]:
        return self._assets

    @property
    def highlighted(self) -> Optional[Asset]:
        if self.cursor == NO_SELECTION:
            return None
        return self.suggestions[self.cursor]

    def _recompute(self):
        self.suggestions = self.index.suggest(self._assets, self.query)
        # Clamp before anyone reads the cursor again
        if self.cursor > len(self.suggestions) - 1:
            self.cursor = len(self.suggestions) - 1

    def update_assets(self, assets: Sequence[Asset]):
        """Recompute suggestions against a freshly refreshed asset list."""
        self._assets = assets
        self._recompute()

    def query_changed(self, query: str):
        self.query = query
        self.cursor = NO_SELECTION
        self.visible = len(query) > 0
        self._recompute()

    def focus(self):
        """Search field regained focus: reveal suggestions again if there is a query."""
        self.visible = len(self.query) > 0

    def move_down(self):
        if not self.visible or not self.suggestions:
            return
        self.cursor = min(self.cursor + 1, len(self.suggestions) - 1)

    def move_up(self):
        if not self.visible:
            return
        self.cursor = max(self.cursor - 1, NO_SELECTION)

    def hover(self, position: int):
        """Pointer moved over a suggestion; out-of-range positions are ignored."""
        if not self.visible or not 0 <= position < len(self.suggestions):
            return
        self.cursor = position

    def confirm(self) -> Optional[Asset]:
        """
        Accept the highlighted suggestion.

        Returns:
            The selected asset, or None when nothing is highlighted
        """
        if not self.visible or not 0 <= self.cursor < len(self.suggestions):
            return None

        asset = self.suggestions[self.cursor]
        self.query = asset.name
        self.visible = False
        self.cursor = NO_SELECTION
        self._recompute()
        logger.debug(f"Suggestion selected: {asset.name}")

        if self.on_select is not None:
            self.on_select(asset)
        return asset

    def select(self, position: int) -> Optional[Asset]:
        """Click on a suggestion: highlight it, then confirm."""
        self.hover(position)
        return self.confirm()

    def cancel(self):
        self.visible = False
        self.cursor = NO_SELECTION

    def dismiss(self):
        """Interaction outside the search surface."""
        self.cancel()

    def handle_key(self, key: str) -> Optional[Asset]:
        """
        Dispatch a keyboard event while the dropdown is visible.

        Args:
            key: 'ArrowDown', 'ArrowUp', 'Enter' or 'Escape'

        Returns:
            The selected asset when the key confirmed a selection
        """
        if not self.visible:
            return None
        if key == 'ArrowDown':
            self.move_down()
        elif key == 'ArrowUp':
            self.move_up()
        elif key == 'Enter':
            return self.confirm()
        elif key == 'Escape':
            self.cancel()
        return None
