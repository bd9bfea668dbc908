"""Tests for the plugin context state machine, using a mocked resource API."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from homebase.console.api import ApiError, ResourceApi
from homebase.console.context import PanelMode
from homebase.console.plugins import (
    ChannelContext,
    ContactContext,
    EstimateContext,
    InvoiceContext,
    NoteContext,
    TaskContext,
)
from homebase.console.registry import PanelCloseRegistry
from homebase.validation import FieldError


@pytest.fixture()
def registry():
    return PanelCloseRegistry()


@pytest.fixture()
def resource():
    return MagicMock(spec=ResourceApi)


@pytest.fixture()
def contacts(resource, registry):
    ctx = ContactContext(resource, registry)
    ctx.mount()
    ctx.items = [
        {"id": "c1", "contactNumber": "01", "companyName": "Acme AB", "email": "info@acme.se"},
    ]
    return ctx


def _note():
    return {"id": "n1", "title": "Call", "content": "Call Acme"}


# ---------------------------------------------------------------------------
# Panel state
# ---------------------------------------------------------------------------

class TestPanelState:
    def test_open_panel_without_item_is_create(self, contacts):
        contacts.open_panel()
        assert contacts.is_open
        assert contacts.mode == PanelMode.CREATE
        assert contacts.current_item is None

    def test_legacy_plugin_opens_item_for_edit(self, contacts):
        contacts.open_panel(contacts.items[0])
        assert contacts.mode == PanelMode.EDIT

    def test_newer_plugin_opens_item_for_view(self, resource, registry):
        invoices = InvoiceContext(resource, registry)
        invoices.open_panel({"id": "i1", "invoiceNumber": "2024-001"})
        assert invoices.mode == PanelMode.VIEW

    def test_opening_clears_errors(self, contacts):
        contacts.validation_errors = [FieldError("x", "y")]
        contacts.open_for_view(contacts.items[0])
        assert contacts.validation_errors == []

    def test_opening_one_panel_closes_the_other(self, contacts, resource, registry):
        notes = NoteContext(resource, registry)
        notes.mount()
        contacts.open_for_edit(contacts.items[0])

        notes.open_for_view(_note())

        assert notes.is_open
        assert not contacts.is_open
        assert contacts.current_item is None

    def test_cancel_from_edit_goes_to_view(self, contacts):
        contacts.open_for_edit(contacts.items[0])
        contacts.cancel()
        assert contacts.is_open
        assert contacts.mode == PanelMode.VIEW

    def test_cancel_from_create_closes(self, contacts):
        contacts.open_for_create()
        contacts.cancel()
        assert not contacts.is_open

    def test_unmount_removes_close_callback(self, contacts, registry):
        contacts.unmount()
        assert "contacts" not in registry


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------

class TestSave:
    def test_blocking_error_skips_api(self, contacts, resource):
        contacts.open_for_create()
        assert not contacts.save({"contactNumber": "01", "companyName": "Other"})
        resource.create.assert_not_called()
        assert contacts.validation_errors[0].message == (
            'Contact number "01" already exists for "Acme AB"'
        )

    def test_advisory_error_does_not_block(self, contacts, resource):
        resource.create.return_value = {"id": "c2", "contactNumber": "02", "companyName": "New"}
        contacts.open_for_create()
        assert contacts.save({"contactNumber": "02", "companyName": "New", "email": "info@acme.se"})
        resource.create.assert_called_once()

    def test_warning_in_interpolated_name_does_not_block(self, resource, registry):
        contacts = ContactContext(resource, registry)
        contacts.items = [{"id": "c1", "contactNumber": "01", "companyName": "Warning Systems AB"}]
        resource.create.return_value = {"id": "c2", "contactNumber": "01", "companyName": "B"}
        contacts.open_for_create()

        assert contacts.save({"contactNumber": "01", "companyName": "B"})
        resource.create.assert_called_once()

    def test_create_appends_once_and_closes(self, contacts, resource):
        saved = {"id": "c2", "contactNumber": "02", "companyName": "New"}
        resource.create.return_value = saved
        contacts.open_for_create()

        assert contacts.save({"companyName": "New"})

        assert contacts.items.count(saved) == 1
        assert not contacts.is_open
        assert resource.create.call_args.args[0]["contactNumber"] == "02"

    def test_edit_moves_to_view_with_server_item(self, contacts, resource):
        server_item = {"id": "c1", "contactNumber": "01", "companyName": "Acme Group AB"}
        resource.update.return_value = server_item
        contacts.open_for_edit(contacts.items[0])

        assert contacts.save({"contactNumber": "01", "companyName": "Acme Group AB"})

        resource.update.assert_called_once_with("c1", {
            "contactNumber": "01", "companyName": "Acme Group AB",
        })
        assert contacts.mode == PanelMode.VIEW
        assert contacts.current_item is server_item
        assert contacts.items == [server_item]

    def test_conflict_surfaces_server_field_errors(self, contacts, resource):
        resource.create.side_effect = ApiError(
            "Conflict", status_code=409,
            field_errors=[FieldError("contactNumber", 'Contact number "02" already exists')],
        )
        contacts.open_for_create()
        assert not contacts.save({"contactNumber": "02", "companyName": "New"})
        assert contacts.validation_errors == [
            FieldError("contactNumber", 'Contact number "02" already exists'),
        ]
        assert contacts.is_open

    def test_other_failure_sets_general_error(self, contacts, resource):
        resource.create.side_effect = ApiError("Network error: refused")
        contacts.open_for_create()
        assert not contacts.save({"contactNumber": "02", "companyName": "New"})
        assert contacts.validation_errors == [
            FieldError("general", "Failed to save contact. Please try again."),
        ]
        assert len(contacts.items) == 1


# ---------------------------------------------------------------------------
# Delete and load
# ---------------------------------------------------------------------------

class TestDeleteAndLoad:
    def test_delete_removes_locally_and_closes(self, contacts, resource):
        contacts.open_for_view(contacts.items[0])
        assert contacts.delete("c1")
        resource.delete.assert_called_once_with("c1")
        assert contacts.items == []
        assert not contacts.is_open

    def test_failed_delete_keeps_item(self, contacts, resource):
        resource.delete.side_effect = ApiError("Contact not found", status_code=404)
        assert not contacts.delete("c1")
        assert len(contacts.items) == 1
        assert contacts.validation_errors[0].field == "general"

    def test_load_failure_keeps_items(self, contacts, resource):
        resource.list.side_effect = ApiError("boom", status_code=500)
        contacts.load()
        assert contacts.load_error == "boom"
        assert len(contacts.items) == 1


# ---------------------------------------------------------------------------
# Panel text
# ---------------------------------------------------------------------------

class TestPanelText:
    def test_titles(self, contacts):
        contacts.open_for_create()
        assert contacts.panel_title() == "New Contact"
        contacts.open_for_edit(contacts.items[0])
        assert contacts.panel_title() == "Edit Contact"
        contacts.open_for_view(contacts.items[0])
        assert contacts.panel_title() == "Acme AB"
        assert contacts.panel_subtitle() == "#01 Company"

    def test_delete_message(self, contacts):
        contacts.open_for_view(contacts.items[0])
        assert contacts.delete_message() == (
            'Are you sure you want to delete "Acme AB"? This action cannot be undone.'
        )


# ---------------------------------------------------------------------------
# Plugin specifics
# ---------------------------------------------------------------------------

class TestPluginSpecifics:
    def test_task_defaults_before_validation(self, resource):
        tasks = TaskContext(resource)
        resource.create.return_value = {"id": "t1", "title": "Call"}
        assert tasks.save({"title": "Call", "content": "Call back"})
        sent = resource.create.call_args.args[0]
        assert sent["status"] == "not started"
        assert sent["priority"] == "Medium"

    def test_task_duplicate(self, resource):
        tasks = TaskContext(resource)
        resource.create.side_effect = lambda data: dict(data, id="t2")
        copy = tasks.duplicate({"id": "t1", "title": "Call", "content": "x", "status": "Done",
                                "priority": "High"})
        assert copy["title"] == "Call (Copy)"
        assert copy["status"] == "not started"
        assert "id" not in resource.create.call_args.args[0]

    def test_task_from_note(self, resource):
        tasks = TaskContext(resource)
        tasks.open_from_note(_note())
        assert tasks.mode == PanelMode.CREATE
        assert tasks.draft["createdFromNote"] == "n1"

    def test_estimate_for_contact_prefill(self, resource):
        estimates = EstimateContext(resource)
        estimates.open_for_contact({"id": "c1", "companyName": "Acme AB", "currency": "EUR"})
        assert estimates.is_open
        assert estimates.draft["contactId"] == "c1"
        assert estimates.draft["currency"] == "EUR"
        assert estimates.draft["lineItems"] == []

    def test_channels_are_read_only(self, resource):
        channels = ChannelContext(resource)
        assert not channels.save({"name": "x"})
        assert not channels.delete("woocommerce")
        resource.update.assert_not_called()
        resource.delete.assert_not_called()
