import pytest
from unittest import mock

from cart.menu import MenuItem
from cart.sessions import DraftSession
from cart.storage import DraftStore


@pytest.fixture
def item():
    return MenuItem.from_payload({"id": "item-a", "name": "Shawarma", "price": "15000", "currency": "SYP"})


class TestDraftSession:
    """Write-through persistence and the summary flag."""

    def test_every_mutation_is_persisted(self, item):
        session = DraftSession("rest-1", "7")

        session.add_selection(item, 2)
        session.set_customer(name="Lina", phone="0911111111")
        session.set_notes("extra napkins")

        stored = DraftStore().load("rest-1", "7")
        assert stored == session.draft
        assert stored.customer_name == "Lina"
        assert stored.notes == "extra napkins"

    def test_reload_picks_up_stored_draft(self, item):
        DraftSession("rest-1", "7").add_selection(item, 1)

        session = DraftSession("rest-1", "7")

        assert session.draft.item_count == 1
        assert session.show_summary is True

    def test_summary_flag_follows_emptiness(self, item):
        session = DraftSession("rest-1", "7")
        assert session.show_summary is False

        session.add_selection(item)
        assert session.show_summary is True

        session.remove_line(session.draft.items[0].line_id)
        assert session.show_summary is False
        assert DraftStore().load("rest-1", "7").is_empty

    def test_quantity_change_to_zero_hides_summary(self, item):
        session = DraftSession("rest-1", "7")
        session.add_selection(item)

        session.update_quantity(session.draft.items[0].line_id, 0)

        assert session.show_summary is False

    def test_total(self, item):
        session = DraftSession("rest-1", "7")
        session.add_selection(item, 3)

        assert session.total == 45000

    def test_clear(self, item):
        session = DraftSession("rest-1", "7")
        session.add_selection(item)

        session.clear()

        assert session.draft.is_empty
        assert DraftStore().load("rest-1", "7").is_empty

    def test_restore_writes_through(self, item):
        session = DraftSession("rest-1", "7")
        session.add_selection(item, 2)
        backup = session.draft
        session.clear()

        session.restore(backup)

        assert session.draft == backup
        assert session.show_summary is True
        assert DraftStore().load("rest-1", "7") == backup

    def test_storage_failure_does_not_block_editing(self, item):
        store = mock.Mock(spec=DraftStore)
        store.load.return_value = DraftStore().load("rest-1", "7")
        store.save.return_value = False

        session = DraftSession("rest-1", "7", store=store)
        session.add_selection(item)

        assert session.draft.item_count == 1
        store.save.assert_called_once()
