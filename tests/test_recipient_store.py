"""
Recipient Store Tests
Behavioral tests for the tenant-scoped recipient list protocol
"""
import itertools
import pytest
from unittest.mock import Mock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from hos_alerter.recipients import (
    ConcurrentModification,
    DuplicateRecipient,
    InvalidRecipient,
    RecipientStore,
    StoreUnavailable,
    TenantNotFound,
    TenantNotInitialized,
)
from hos_alerter.storage import RevisionConflict, StorageError
from hos_alerter.storage.sqlite_backend import SQLiteBackend


def make_clock():
    """Deterministic, strictly increasing ISO timestamps"""
    counter = itertools.count(1)
    return lambda: f"2026-01-01T00:00:{next(counter):02d}+00:00"


@pytest.fixture
def backend(tmp_path):
    backend = SQLiteBackend(str(tmp_path / "hos.db"))
    yield backend
    backend.close()


@pytest.fixture
def store(backend):
    return RecipientStore(backend=backend, clock=make_clock(), sleep=Mock())


class TestEnsureTenantConfiguration:
    """Lazy creation of the per-tenant configuration document"""

    def test_creates_empty_configuration(self, store, backend):
        """New tenant gets exactly one empty, active document"""
        assert store.ensure_tenant_configuration("acme") is True

        assert store.list_recipients("acme") == []
        items = backend.list_configurations()
        assert [i["database_name"] for i in items] == ["acme"]
        assert items[0]["active"] is True
        assert items[0]["revision"] == 0
        assert items[0]["created_at"] == items[0]["updated_at"]

    def test_second_call_is_noop(self, store, backend):
        """Existing tenant document is left untouched"""
        store.ensure_tenant_configuration("acme")
        store.add_recipient("acme", "a@x.com")

        assert store.ensure_tenant_configuration("acme") is False

        assert len(backend.list_configurations()) == 1
        assert [r.email for r in store.list_recipients("acme")] == ["a@x.com"]

    def test_demo_is_never_persisted(self, store, backend):
        """The demo database never gets a document"""
        assert store.ensure_tenant_configuration("demo") is False

        assert backend.list_configurations() == []
        assert store.list_recipients("demo") == []

    def test_empty_tenant_is_skipped(self, store, backend):
        """Empty tenant id skips persistence"""
        assert store.ensure_tenant_configuration("") is False
        assert backend.list_configurations() == []

    def test_lost_creation_race_returns_false(self):
        """A concurrent creator winning the insert is not an error"""
        backend = Mock()
        backend.get_configuration.return_value = None
        backend.create_configuration.return_value = False

        store = RecipientStore(backend=backend)

        assert store.ensure_tenant_configuration("acme") is False
        backend.create_configuration.assert_called_once()

    def test_store_failure_raises_store_unavailable(self):
        """Query failure surfaces as StoreUnavailable"""
        backend = Mock()
        backend.get_configuration.side_effect = StorageError("connection reset")

        store = RecipientStore(backend=backend)

        with pytest.raises(StoreUnavailable):
            store.ensure_tenant_configuration("acme")
        backend.create_configuration.assert_not_called()


class TestListRecipients:
    """Read path"""

    def test_missing_document_is_empty(self, store):
        """No document is a valid, empty result"""
        assert store.list_recipients("unknown") == []

    def test_repeated_reads_are_identical(self, store):
        """Two reads with no writes in between agree"""
        store.ensure_tenant_configuration("acme")
        store.add_recipient("acme", "a@x.com")
        store.add_recipient("acme", "b@y.com")

        assert store.list_recipients("acme") == store.list_recipients("acme")

    def test_store_failure_raises_store_unavailable(self):
        """Connectivity failures are the only errors"""
        backend = Mock()
        backend.get_configuration.side_effect = StorageError("timeout")

        with pytest.raises(StoreUnavailable):
            RecipientStore(backend=backend).list_recipients("acme")

    def test_document_without_recipients_field(self):
        """Legacy document missing recipients reads as empty"""
        backend = Mock()
        backend.get_configuration.return_value = {"database_name": "acme", "active": True}

        assert RecipientStore(backend=backend).list_recipients("acme") == []


class TestAddRecipient:
    """Append path"""

    def test_add_then_list(self, store):
        """Added recipient shows up exactly once"""
        store.ensure_tenant_configuration("acme")

        result = store.add_recipient("acme", "a@x.com")

        assert [r.email for r in result] == ["a@x.com"]
        listed = store.list_recipients("acme")
        assert [r.email for r in listed] == ["a@x.com"]
        assert listed[0].added_at

    def test_duplicate_is_rejected(self, store):
        """Second add of the same email fails without a write"""
        store.ensure_tenant_configuration("acme")
        store.add_recipient("acme", "a@x.com")
        revision = store.get_configuration("acme").revision

        with pytest.raises(DuplicateRecipient):
            store.add_recipient("acme", "a@x.com")

        assert [r.email for r in store.list_recipients("acme")] == ["a@x.com"]
        assert store.get_configuration("acme").revision == revision

    def test_email_is_trimmed(self, store):
        """Surrounding whitespace is ignored for duplicate detection"""
        store.ensure_tenant_configuration("acme")
        store.add_recipient("acme", "  a@x.com ")

        with pytest.raises(DuplicateRecipient):
            store.add_recipient("acme", "a@x.com")

    def test_email_match_is_case_sensitive(self, store):
        """Emails differing only in case are distinct recipients"""
        store.ensure_tenant_configuration("acme")
        store.add_recipient("acme", "a@x.com")
        store.add_recipient("acme", "A@x.com")

        assert [r.email for r in store.list_recipients("acme")] == ["a@x.com", "A@x.com"]

    def test_updated_at_refreshed_created_at_kept(self, store):
        """Mutation refreshes updated_at only"""
        store.ensure_tenant_configuration("acme")
        before = store.get_configuration("acme")

        store.add_recipient("acme", "a@x.com")
        after = store.get_configuration("acme")

        assert after.created_at == before.created_at
        assert after.updated_at > before.updated_at
        assert after.revision == before.revision + 1

    def test_unknown_tenant_raises_tenant_not_found(self, store, backend):
        """No document is created by add"""
        with pytest.raises(TenantNotFound):
            store.add_recipient("never-ensured", "a@x.com")

        assert backend.list_configurations() == []

    def test_demo_tenant_raises_tenant_not_found(self, store):
        with pytest.raises(TenantNotFound):
            store.add_recipient("demo", "a@x.com")

    def test_empty_tenant_raises_not_initialized(self, store):
        with pytest.raises(TenantNotInitialized):
            store.add_recipient("", "a@x.com")

    @pytest.mark.parametrize("email", ["o'brien@example.com", "dispatch@localhost"])
    def test_uncommon_but_legal_addresses_accepted(self, store, email):
        """Apostrophes and dotless domains are valid recipients"""
        store.ensure_tenant_configuration("acme")

        result = store.add_recipient("acme", email)

        assert [r.email for r in result] == [email]

    @pytest.mark.parametrize("email", ["", "   ", None, "not-an-email", 5])
    def test_invalid_email_rejected_before_store_call(self, email):
        """Validation happens before any store access"""
        backend = Mock()

        with pytest.raises(InvalidRecipient):
            RecipientStore(backend=backend).add_recipient("acme", email)

        backend.get_configuration.assert_not_called()


class TestRemoveRecipient:
    """Filter path"""

    def test_remove_preserves_order(self, store):
        """Only the target is removed, the rest keep their order"""
        store.ensure_tenant_configuration("acme")
        store.add_recipient("acme", "a@x.com")
        store.add_recipient("acme", "b@y.com")
        store.add_recipient("acme", "c@z.com")

        result = store.remove_recipient("acme", "a@x.com")

        assert [r.email for r in result] == ["b@y.com", "c@z.com"]
        assert [r.email for r in store.list_recipients("acme")] == ["b@y.com", "c@z.com"]

    def test_remove_unknown_email_is_idempotent(self, store):
        """Removing a missing email succeeds and changes nothing"""
        store.ensure_tenant_configuration("acme")
        store.add_recipient("acme", "a@x.com")
        before = store.list_recipients("acme")

        result = store.remove_recipient("acme", "nonexistent@x.com")

        assert result == before
        assert store.list_recipients("acme") == before

    def test_remove_keeps_added_at(self, store):
        store.ensure_tenant_configuration("acme")
        added = store.add_recipient("acme", "a@x.com")[0]
        store.add_recipient("acme", "b@y.com")

        store.remove_recipient("acme", "b@y.com")

        assert store.list_recipients("acme") == [added]

    def test_unknown_tenant_raises_tenant_not_found(self, store):
        with pytest.raises(TenantNotFound):
            store.remove_recipient("never-ensured", "a@x.com")

    def test_write_failure_raises_store_unavailable(self):
        backend = Mock()
        backend.get_configuration.return_value = {
            "database_name": "acme",
            "recipients": [{"email": "a@x.com", "added_at": "t"}],
            "revision": 1,
        }
        backend.replace_recipients.side_effect = StorageError("throttled")

        with pytest.raises(StoreUnavailable):
            RecipientStore(backend=backend).remove_recipient("acme", "a@x.com")


class RacingBackend(SQLiteBackend):
    """Simulates a second operator writing between our read and our write"""

    def __init__(self, db_path, competing_email, races=1):
        super().__init__(db_path)
        self.competing_email = competing_email
        self.races_left = races

    def replace_recipients(self, database_name, recipients, updated_at, expected_revision):
        if self.races_left:
            self.races_left -= 1
            current = self.get_configuration(database_name)
            super().replace_recipients(
                database_name,
                current["recipients"] + [{"email": self.competing_email, "added_at": updated_at}],
                updated_at,
                current["revision"],
            )
        return super().replace_recipients(
            database_name, recipients, updated_at, expected_revision
        )


class TestConcurrentModification:
    """Revision-guarded writes with bounded retry"""

    def test_conflict_retries_and_keeps_both_changes(self, tmp_path):
        """A racing write is not lost"""
        backend = RacingBackend(str(tmp_path / "hos.db"), "other@x.com")
        sleep = Mock()
        store = RecipientStore(backend=backend, sleep=sleep, backoff_seconds=0.1)
        store.ensure_tenant_configuration("acme")

        result = store.add_recipient("acme", "a@x.com")

        assert [r.email for r in result] == ["other@x.com", "a@x.com"]
        sleep.assert_called_once_with(0.1)
        backend.close()

    def test_duplicate_detected_on_retry(self, tmp_path):
        """The fresh read on retry sees the racing insert"""
        backend = RacingBackend(str(tmp_path / "hos.db"), "a@x.com")
        store = RecipientStore(backend=backend, sleep=Mock())
        store.ensure_tenant_configuration("acme")

        with pytest.raises(DuplicateRecipient):
            store.add_recipient("acme", "a@x.com")

        assert [r.email for r in store.list_recipients("acme")] == ["a@x.com"]
        backend.close()

    def test_retries_exhausted(self):
        """Persistent conflicts end with ConcurrentModification after backoff"""
        backend = Mock()
        backend.get_configuration.return_value = {
            "database_name": "acme",
            "recipients": [],
            "revision": 4,
        }
        backend.replace_recipients.side_effect = RevisionConflict("acme")
        sleep = Mock()
        store = RecipientStore(backend=backend, max_attempts=3, backoff_seconds=0.1, sleep=sleep)

        with pytest.raises(ConcurrentModification):
            store.add_recipient("acme", "a@x.com")

        assert backend.replace_recipients.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.1, 0.2]
