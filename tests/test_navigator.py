from unittest.mock import Mock

from models import Asset
from services.search import NO_SELECTION, SuggestionNavigator


def make_navigator(assets, query="bit", on_select=None):
    navigator = SuggestionNavigator(on_select=on_select)
    navigator.update_assets(assets)
    navigator.query_changed(query)
    return navigator


def test_query_change_resets_cursor_and_reveals(assets):
    navigator = make_navigator(assets)
    navigator.move_down()
    navigator.query_changed("bitc")
    assert navigator.cursor == NO_SELECTION
    assert navigator.visible
    assert [a.id for a in navigator.suggestions] == ["bitcoin", "bitcoin-cash", "wrapped-bitcoin"]


def test_empty_query_hides_suggestions(assets):
    navigator = make_navigator(assets)
    navigator.query_changed("")
    assert not navigator.visible
    assert not navigator.shown
    assert navigator.suggestions == []


def test_move_down_saturates_at_last_index(assets):
    navigator = make_navigator(assets)
    for _ in range(10):
        navigator.move_down()
        assert navigator.cursor <= len(navigator.suggestions) - 1
    assert navigator.cursor == len(navigator.suggestions) - 1


def test_move_up_saturates_at_no_selection(assets):
    navigator = make_navigator(assets)
    navigator.move_down()
    for _ in range(5):
        navigator.move_up()
        assert navigator.cursor >= NO_SELECTION
    assert navigator.cursor == NO_SELECTION


def test_moves_ignored_while_hidden(assets):
    navigator = make_navigator(assets)
    navigator.cancel()
    navigator.move_down()
    assert navigator.cursor == NO_SELECTION


def test_confirm_without_selection_is_noop(assets):
    on_select = Mock()
    navigator = make_navigator(assets, on_select=on_select)
    assert navigator.confirm() is None
    assert navigator.query == "bit"
    assert navigator.cursor == NO_SELECTION
    assert navigator.visible
    on_select.assert_not_called()


def test_confirm_selects_highlighted_asset(assets):
    on_select = Mock()
    navigator = make_navigator(assets, on_select=on_select)
    navigator.move_down()
    navigator.move_down()

    selected = navigator.confirm()

    assert selected.name == "Bitcoin Cash"
    assert navigator.query == "Bitcoin Cash"
    assert navigator.cursor == NO_SELECTION
    assert not navigator.visible
    on_select.assert_called_once_with(selected)


def test_cancel_is_idempotent(assets):
    navigator = make_navigator(assets)
    navigator.move_down()
    navigator.cancel()
    first = (navigator.cursor, navigator.visible, navigator.query)
    navigator.cancel()
    assert (navigator.cursor, navigator.visible, navigator.query) == first == (NO_SELECTION, False, "bit")


def test_dismiss_behaves_like_cancel(assets):
    navigator = make_navigator(assets)
    navigator.move_down()
    navigator.dismiss()
    assert navigator.cursor == NO_SELECTION
    assert not navigator.visible


def test_hover_sets_cursor_and_ignores_out_of_range(assets):
    navigator = make_navigator(assets)
    navigator.hover(2)
    assert navigator.cursor == 2
    assert navigator.highlighted.id == "wrapped-bitcoin"
    navigator.hover(7)
    assert navigator.cursor == 2
    navigator.hover(-1)
    assert navigator.cursor == 2


def test_select_by_position(assets):
    navigator = make_navigator(assets)
    selected = navigator.select(0)
    assert selected.id == "bitcoin"
    assert navigator.query == "Bitcoin"


def test_shrinking_asset_list_clamps_cursor(assets):
    navigator = make_navigator(assets)
    navigator.hover(2)
    navigator.update_assets(assets[:1])
    assert navigator.cursor == 0
    assert navigator.highlighted.id == "bitcoin"

    navigator.update_assets([Asset(id="tether", name="Tether", symbol="usdt")])
    assert navigator.suggestions == []
    assert navigator.cursor == NO_SELECTION


def test_focus_reveals_only_with_query(assets):
    navigator = make_navigator(assets)
    navigator.cancel()
    navigator.focus()
    assert navigator.visible

    navigator.query_changed("")
    navigator.focus()
    assert not navigator.visible


def test_handle_key_dispatch(assets):
    navigator = make_navigator(assets)
    assert navigator.handle_key('ArrowDown') is None
    assert navigator.cursor == 0
    navigator.handle_key('ArrowDown')
    navigator.handle_key('ArrowUp')
    assert navigator.cursor == 0

    selected = navigator.handle_key('Enter')
    assert selected.id == "bitcoin"

    navigator.query_changed("eth")
    navigator.handle_key('ArrowDown')
    navigator.handle_key('Escape')
    assert navigator.cursor == NO_SELECTION
    assert not navigator.visible
    # keys are ignored once hidden
    navigator.handle_key('ArrowDown')
    assert navigator.cursor == NO_SELECTION
