#!/usr/bin/env python3
"""Unit tests for CredentialService registration and credential lookup."""

import asyncio
import json
import sys
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from warden.errors import (
    CredentialNotFound,
    DuplicateEmail,
    EmailConflictError,
    InvalidCredential,
    Outcome,
    StorageError,
    StorageFailure,
)
from warden.hashing import BcryptHasher, PasswordHasher
from warden.service import CredentialService, normalize_email
from warden.stores import InMemoryUserStore, SQLiteUserStore, UserRecord, UserStore


@pytest.fixture(scope="module")
def hasher():
    return BcryptHasher(rounds=4)


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def service(store, hasher):
    return CredentialService(store, hasher)


class TestRegister:
    def test_register_hashes_and_assigns_identity(self, service, hasher):
        outcome = service.register_user("a@x.com", "1234", role="ADMIN")

        assert outcome.ok
        user = outcome.record
        assert user.id > 0
        assert user.email == "a@x.com"
        assert user.role == "ADMIN"
        assert user.password != "1234"
        assert hasher.verify("1234", user.password)

    def test_register_twice_yields_duplicate(self, service, store):
        first = service.register_user("a@x.com", "1234", role="ADMIN")
        stored_before = store.find_by_email("a@x.com")

        second = service.register_user("a@x.com", "5678", role="USER")

        assert first.ok
        assert not second.ok
        assert isinstance(second.error, DuplicateEmail)
        assert second.record is None
        assert [u.email for u in store.find_all()] == ["a@x.com"]
        assert store.find_by_email("a@x.com") == stored_before

    def test_loaded_password_is_not_plaintext(self, service):
        service.register_user("p@x.com", "plain-secret")

        loaded = service.load_credential("p@x.com")

        assert loaded.ok
        assert loaded.record.password != "plain-secret"

    def test_register_record_candidate_left_untouched(self, service):
        candidate = UserRecord(email="c@x.com", password="1234", role="USER")

        outcome = service.register(candidate)

        assert outcome.ok
        assert candidate.password == "1234"
        assert candidate.id is None

    def test_register_ignores_preset_identity(self, service):
        outcome = service.register(UserRecord(email="c@x.com", password="1234", id=77))

        assert outcome.ok
        assert outcome.record.id == 1

    def test_default_role(self, service):
        assert service.register_user("d@x.com", "1234").record.role == "USER"

    def test_duplicate_skips_hash_and_save(self, hasher):
        mock_store = MagicMock(spec=UserStore)
        mock_hasher = MagicMock(spec=PasswordHasher)
        existing = UserRecord(email="permanentuser@mail.com", password="h", role="ADMIN", id=1)
        mock_store.find_by_email.return_value = existing
        service = CredentialService(mock_store, mock_hasher)

        outcome = service.register_user("permanentuser@mail.com", "1234", role="ADMIN")

        assert isinstance(outcome.error, DuplicateEmail)
        mock_store.save.assert_not_called()
        mock_hasher.hash.assert_not_called()

    def test_store_conflict_maps_to_duplicate(self, hasher):
        mock_store = MagicMock(spec=UserStore)
        mock_store.find_by_email.return_value = None
        mock_store.save.side_effect = EmailConflictError("race@x.com")
        service = CredentialService(mock_store, hasher)

        outcome = service.register_user("race@x.com", "1234")

        assert not outcome.ok
        assert isinstance(outcome.error, DuplicateEmail)

    def test_storage_error_maps_to_storage_failure(self, hasher):
        mock_store = MagicMock(spec=UserStore)
        mock_store.find_by_email.side_effect = StorageError("disk on fire")
        service = CredentialService(mock_store, hasher)

        outcome = service.register_user("a@x.com", "1234")

        assert isinstance(outcome.error, StorageFailure)
        assert "disk on fire" in str(outcome.error)
        mock_store.save.assert_not_called()

    @pytest.mark.parametrize("email", ["", "   ", "not-an-email"])
    def test_invalid_email_rejected(self, service, store, email):
        outcome = service.register_user(email, "1234")

        assert isinstance(outcome.error, InvalidCredential)
        assert store.find_all() == []

    def test_empty_password_rejected(self, service, store):
        outcome = service.register_user("a@x.com", "")

        assert isinstance(outcome.error, InvalidCredential)
        assert store.find_all() == []

    def test_concurrent_registration_same_email(self, tmp_path, hasher):
        store = SQLiteUserStore(db_path=str(tmp_path / "users.db"))
        service = CredentialService(store, hasher)
        outcomes = []
        barrier = threading.Barrier(6)

        def worker():
            barrier.wait()
            outcomes.append(service.register_user("race@x.com", "1234"))

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(1 for o in outcomes if o.ok) == 1
        assert all(isinstance(o.error, DuplicateEmail) for o in outcomes if not o.ok)
        assert len(store.find_all()) == 1
        store.close()

    @pytest.mark.parametrize("password", ["p" * 73, "p" * 100, "密" * 25])
    def test_overlong_password_rejected(self, service, store, password):
        outcome = service.register_user("long@x.com", password)

        assert not outcome.ok
        assert isinstance(outcome.error, InvalidCredential)
        assert store.find_all() == []

    @pytest.mark.parametrize("password", ["p" * 72, "密" * 24])
    def test_password_at_byte_limit_accepted(self, service, hasher, password):
        outcome = service.register_user("edge@x.com", password)

        assert outcome.ok
        assert hasher.verify(password, outcome.record.password)

    def test_none_email_without_normalization(self, store, hasher):
        service = CredentialService(store, hasher, normalize_emails=False)

        outcome = service.register(UserRecord(email=None, password="1234"))

        assert isinstance(outcome.error, InvalidCredential)
        assert store.find_all() == []


class TestEmailNormalization:
    def test_normalize_email(self):
        assert normalize_email("  Owl@Example.COM ") == "owl@example.com"
        assert normalize_email(None) == ""

    def test_register_normalizes(self, service, store):
        outcome = service.register_user(" A@X.com ", "1234")

        assert outcome.record.email == "a@x.com"
        assert store.find_by_email("a@x.com") is not None

    def test_case_variants_are_duplicates(self, service):
        service.register_user("a@x.com", "1234")
        assert isinstance(service.register_user("A@X.COM", "1234").error, DuplicateEmail)

    def test_lookup_normalizes(self, service):
        service.register_user("a@x.com", "1234")
        assert service.load_credential("A@x.Com").ok

    def test_disabled_keeps_case(self, store, hasher):
        service = CredentialService(store, hasher, normalize_emails=False)

        first = service.register_user("A@x.com", "1234")
        second = service.register_user("a@x.com", "1234")

        assert first.record.email == "A@x.com"
        assert second.ok
        assert not service.load_credential("A@X.COM").ok


class TestLoadCredential:
    def test_nonexistent_on_empty_store(self, service):
        outcome = service.load_credential("nonexistent@x.com")

        assert not outcome.ok
        assert isinstance(outcome.error, CredentialNotFound)
        with pytest.raises(CredentialNotFound):
            outcome.unwrap()

    def test_returns_record_verbatim(self, service, store):
        registered = service.register_user("a@x.com", "1234", role="ADMIN").record

        loaded = service.load_credential("a@x.com").unwrap()

        assert loaded == registered
        assert loaded == store.find_by_email("a@x.com")

    def test_storage_error_maps_to_storage_failure(self, hasher):
        mock_store = MagicMock(spec=UserStore)
        mock_store.find_by_email.side_effect = StorageError("gone")
        service = CredentialService(mock_store, hasher)

        assert isinstance(service.load_credential("a@x.com").error, StorageFailure)


class TestOutcome:
    def test_success(self):
        record = UserRecord(email="a@x.com", password="h", id=1)
        outcome = Outcome.success(record)
        assert outcome.ok
        assert outcome.unwrap() is record

    def test_failure(self):
        outcome = Outcome.failure(DuplicateEmail("a@x.com"))
        assert not outcome.ok
        assert outcome.error.kind == "duplicate_email"
        with pytest.raises(DuplicateEmail):
            outcome.unwrap()


class TestAuditEvents:
    def test_registration_events(self, service, event_log):
        service.register_user("a@x.com", "audit-pass", role="ADMIN")
        service.register_user("a@x.com", "audit-pass")

        lines = [json.loads(l) for l in event_log.read_text().splitlines()]

        assert [e["event_type"] for e in lines] == ["user_registered", "registration_rejected"]
        assert lines[0]["email"] == "a@x.com"
        assert lines[0]["role"] == "ADMIN"
        assert lines[1]["reason"] == "duplicate_email"
        assert "audit-pass" not in event_log.read_text()

    def test_password_never_logged(self, service, caplog):
        caplog.set_level("DEBUG", logger="warden")
        service.register_user("a@x.com", "hunter2-secret")
        service.register_user("a@x.com", "hunter2-secret")
        service.load_credential("missing@x.com")

        assert "hunter2-secret" not in caplog.text
        assert "$2b$" not in caplog.text


class TestAsync:
    @pytest.mark.asyncio
    async def test_register_async(self, service):
        outcome = await service.register_async(UserRecord(email="a@x.com", password="1234"))
        assert outcome.ok

        loaded = await service.load_credential_async("a@x.com")
        assert loaded.record == outcome.record

    @pytest.mark.asyncio
    async def test_register_async_with_timeout(self, service):
        outcome = await asyncio.wait_for(
            service.register_async(UserRecord(email="t@x.com", password="1234")),
            timeout=30,
        )
        assert outcome.ok
