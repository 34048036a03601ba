# Overview: Service-layer operations for the audit trail; best-effort writes and tolerant reads.

"""
Audit Recorder

- Append-only log of significant actions (sales, product changes, logins).
- Writes are best-effort: they run after the business transaction has
  committed, in their own commit. A failure is logged and never propagates
  to the caller, so an audit outage cannot undo a sale.
- Details are a structured AuditDetails payload, JSON-encoded and then
  passed through the configured codec (encrypted at rest when a key is set).
- Reads never crash on a bad row: undecryptable or unparseable details are
  rendered with a distinguishable marker.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from flask import current_app

from ..extensions import db
from ..models import AuditLog
from ..time_utils import to_utc_z
from .audit_codec import AuditCodec, PlainCodec, UndecryptableError, codec_from_config

UNDECRYPTABLE_MARKER = "(Failed to decrypt)"

DETAILS_OK = "ok"
DETAILS_NONE = "none"
DETAILS_UNDECRYPTABLE = "undecryptable"
DETAILS_UNPARSEABLE = "unparseable"

MAX_AUDIT_PAGE = 500


@dataclass(frozen=True)
class AuditDetails:
    """Tagged audit payload: `kind` names the shape of `data`."""
    kind: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({"kind": self.kind, "data": dict(self.data)}, default=str, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "AuditDetails":
        parsed = json.loads(raw)
        if not isinstance(parsed, dict) or "kind" not in parsed:
            raise ValueError("Not an AuditDetails payload")
        data = parsed.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("AuditDetails data must be an object")
        return cls(kind=str(parsed["kind"]), data=data)


def get_codec() -> AuditCodec:
    codec = current_app.extensions.get("audit_codec")
    if codec is None:
        codec = codec_from_config(current_app.config)
        current_app.extensions["audit_codec"] = codec
    return codec


def init_app(app) -> None:
    codec = codec_from_config(app.config)
    app.extensions["audit_codec"] = codec
    if isinstance(codec, PlainCodec):
        app.logger.warning("AUDIT_ENCRYPTION_KEY is not set; audit details will be stored unencrypted.")


def record_event(
    action: str,
    *,
    user_id: str | None = None,
    details: AuditDetails | None = None,
    ip_address: str | None = None,
) -> AuditLog | None:
    """
    Append one audit entry and commit it.

    Returns the entry, or None if it could not be written (already logged).
    """
    try:
        encoded = get_codec().encode(details.to_json()) if details is not None else None
        entry = AuditLog(
            action=action,
            user_id=user_id,
            details=encoded,
            ip_address=ip_address,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record audit event %s", action)
        return None


def _decode_details(stored: str | None) -> tuple[Any, str]:
    if stored is None:
        return None, DETAILS_NONE
    try:
        plaintext = get_codec().decode(stored)
    except UndecryptableError:
        return UNDECRYPTABLE_MARKER, DETAILS_UNDECRYPTABLE
    try:
        payload = AuditDetails.from_json(plaintext)
    except ValueError:
        return plaintext, DETAILS_UNPARSEABLE
    return {"kind": payload.kind, **payload.data}, DETAILS_OK


def _user_label(entry: AuditLog) -> str:
    if entry.user is not None:
        return entry.user.name or entry.user.email
    if entry.user_id:
        return f"User ID: {entry.user_id[:8]}..."
    return "System"


def list_audit_logs(limit: int = 50, offset: int = 0) -> list[dict]:
    """Newest first. Details are decoded per row; a bad row yields a marker, not an error."""
    limit = max(1, min(limit, MAX_AUDIT_PAGE))
    offset = max(0, offset)

    entries = (
        db.session.query(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    result = []
    for entry in entries:
        details, status = _decode_details(entry.details)
        result.append({
            "id": entry.id,
            "action": entry.action,
            "user_id": entry.user_id,
            "user_name": _user_label(entry),
            "details": details,
            "details_status": status,
            "ip_address": entry.ip_address,
            "created_at": to_utc_z(entry.created_at),
        })
    return result
