"""
Audit recorder tests.

Verifies:
- Details are encrypted at rest when a key is configured
- Rows written under another key render a marker instead of failing
- A failing audit write is logged and never raised
"""

import json
import logging

import pytest
from cryptography.fernet import Fernet

from marketease.extensions import db
from marketease.models import AuditLog, ImmutableRecordError
from marketease.services import audit_service
from marketease.services.audit_codec import FernetCodec, PlainCodec, UndecryptableError, codec_from_config
from marketease.services.audit_service import AuditDetails, UNDECRYPTABLE_MARKER, record_event


class TestCodecs:

    def test_plain_codec_when_no_key(self):
        assert isinstance(codec_from_config({"AUDIT_ENCRYPTION_KEY": None}), PlainCodec)

    def test_fernet_codec_when_key_set(self):
        key = Fernet.generate_key().decode()
        assert isinstance(codec_from_config({"AUDIT_ENCRYPTION_KEY": key}), FernetCodec)

    def test_malformed_key_rejected(self):
        with pytest.raises(ValueError):
            codec_from_config({"AUDIT_ENCRYPTION_KEY": "not-a-key"})

    def test_wrong_key_is_undecryptable(self):
        stored = FernetCodec(Fernet.generate_key()).encode("hello")
        with pytest.raises(UndecryptableError):
            FernetCodec(Fernet.generate_key()).decode(stored)


class TestRecordEvent:

    def test_details_encrypted_at_rest(self, db_session):
        entry = record_event("SALE_RECORDED", details=AuditDetails("sale", {"sale_id": "s-1"}))

        stored = db_session.get(AuditLog, entry.id).details
        assert "s-1" not in stored
        assert json.loads(audit_service.get_codec().decode(stored))["data"] == {"sale_id": "s-1"}

    def test_listing_decodes_details(self, db_session, cashier):
        record_event("PRODUCT_CREATED", user_id=cashier.id,
                     details=AuditDetails("product", {"name": "Eggs"}), ip_address="127.0.0.1")

        [entry] = audit_service.list_audit_logs()
        assert entry["action"] == "PRODUCT_CREATED"
        assert entry["details"] == {"kind": "product", "name": "Eggs"}
        assert entry["details_status"] == audit_service.DETAILS_OK
        assert entry["user_name"] == "Casey Cashier"
        assert entry["ip_address"] == "127.0.0.1"
        assert entry["created_at"].endswith("Z")

    def test_system_events_have_no_user(self, db_session):
        record_event("PRODUCT_CREATED")
        [entry] = audit_service.list_audit_logs()
        assert entry["user_name"] == "System"
        assert entry["details"] is None
        assert entry["details_status"] == audit_service.DETAILS_NONE

    def test_undecryptable_row_renders_marker(self, db_session):
        foreign = FernetCodec(Fernet.generate_key()).encode(AuditDetails("sale", {}).to_json())
        db_session.add(AuditLog(action="SALE_RECORDED", details=foreign))
        db_session.commit()
        record_event("PRODUCT_CREATED", details=AuditDetails("product", {"name": "Eggs"}))

        entries = {e["action"]: e for e in audit_service.list_audit_logs()}
        assert entries["SALE_RECORDED"]["details"] == UNDECRYPTABLE_MARKER
        assert entries["SALE_RECORDED"]["details_status"] == audit_service.DETAILS_UNDECRYPTABLE
        assert entries["PRODUCT_CREATED"]["details_status"] == audit_service.DETAILS_OK

    def test_unparseable_row_rendered_raw(self, db_session):
        stored = audit_service.get_codec().encode("legacy free text")
        db_session.add(AuditLog(action="LEGACY", details=stored))
        db_session.commit()

        [entry] = audit_service.list_audit_logs()
        assert entry["details"] == "legacy free text"
        assert entry["details_status"] == audit_service.DETAILS_UNPARSEABLE

    def test_failure_is_logged_not_raised(self, app, db_session, monkeypatch, caplog):
        class BrokenCodec:
            name = "broken"

            def encode(self, plaintext):
                raise RuntimeError("codec down")

            def decode(self, stored):
                return stored

        monkeypatch.setitem(app.extensions, "audit_codec", BrokenCodec())

        with caplog.at_level(logging.ERROR):
            result = record_event("SALE_RECORDED", details=AuditDetails("sale", {}))

        assert result is None
        assert "Failed to record audit event SALE_RECORDED" in caplog.text
        assert db_session.query(AuditLog).count() == 0

    def test_entries_are_append_only(self, db_session):
        entry = record_event("PRODUCT_CREATED")
        entry.action = "TAMPERED"
        with pytest.raises(ImmutableRecordError):
            db.session.flush()
        db.session.rollback()


class TestPaging:

    def test_newest_first_with_offset(self, db_session):
        for i in range(5):
            record_event(f"EVENT_{i}")

        page = audit_service.list_audit_logs(limit=2, offset=1)
        assert [e["action"] for e in page] == ["EVENT_3", "EVENT_2"]

    def test_limit_is_capped(self, db_session):
        record_event("ONE")
        assert len(audit_service.list_audit_logs(limit=10_000)) == 1
