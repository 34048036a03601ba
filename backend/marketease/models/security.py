from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from marketease.time_utils import to_utc_z
from .sales import ImmutableRecordError


class AuditLog(db.Model):
    """
    Audit trail of significant actions.

    details holds the encoded (possibly encrypted) AuditDetails payload;
    decoding happens in audit_service so a bad row never breaks the viewer.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_created", "created_at"),
        db.Index("ix_audit_logs_user_action", "user_id", "action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    action = db.Column(db.String(64), nullable=False, index=True)  # SALE_RECORDED, PRODUCT_DELETED, USER_LOGIN_FAILED, ...

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)  # Nullable for system/anonymous

    details = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("audit_logs", lazy=True))


def _refuse_change(mapper, connection, target):
    raise ImmutableRecordError(f"AuditLog {target.id} is append-only")


event.listen(AuditLog, "before_update", _refuse_change)
event.listen(AuditLog, "before_delete", _refuse_change)
