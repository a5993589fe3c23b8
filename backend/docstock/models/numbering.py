from __future__ import annotations

from ..extensions import db
from docstock.time_utils import to_utc_z


class NumberingTemplate(db.Model):
    """
    Tenant-owned numbering pattern for one document series.

    Pattern placeholders: {{YYYY}}, {{YY}}, {{MM}}, {{DD}} and exactly one
    {{SEQ:n}} (zero-pad width n >= 1). starting_value is the floor the series
    counter is raised to before the next reservation.

    Read-only to the numbering services; maintained by tenant configuration.
    """
    __tablename__ = "numbering_templates"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "series_code", name="uq_numbering_templates_tenant_series"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    series_code = db.Column(db.String(32), nullable=False)
    pattern = db.Column(db.String(120), nullable=False)
    starting_value = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "series_code": self.series_code,
            "pattern": self.pattern,
            "starting_value": self.starting_value,
        }


class SeriesCounter(db.Model):
    """
    Atomic per-tenant series counters.

    last_value is the last integer handed out; it only moves forward through
    the reserve UPDATE. Rows are created lazily and never deleted.
    """
    __tablename__ = "series_counters"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "series_code", name="uq_series_counters_tenant_series"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    series_code = db.Column(db.String(32), nullable=False, index=True)
    last_value = db.Column(db.Integer, nullable=False, default=0)
    starting_value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "series_code": self.series_code,
            "last_value": self.last_value,
            "starting_value": self.starting_value,
            "updated_at": to_utc_z(self.updated_at),
        }
