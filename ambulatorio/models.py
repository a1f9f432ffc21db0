from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base, new_uuid

# UUID e timestamp salvati come TEXT (ISO 8601), booleani come INTEGER 0/1.
NOW = text("(datetime('now'))")
ZERO = text("0")
ONE = text("1")


def _id_column() -> Mapped[str]:
    return mapped_column(String(36), primary_key=True, default=new_uuid)


class Practitioner(Base):
    __tablename__ = "practitioners"

    id: Mapped[str] = _id_column()
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str | None] = mapped_column(Text)
    practice_name: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(Text)
    postal_code: Mapped[str | None] = mapped_column(Text)
    siret: Mapped[str | None] = mapped_column(Text)
    default_rate: Mapped[float | None] = mapped_column(Float, server_default=text("60.0"))
    invoice_prefix: Mapped[str | None] = mapped_column(Text, server_default=text("'FACT'"))
    invoice_next_number: Mapped[int | None] = mapped_column(Integer, server_default=ONE)
    logo_url: Mapped[str | None] = mapped_column(Text)
    primary_color: Mapped[str | None] = mapped_column(Text, server_default=text("'#2563eb'"))
    rpps: Mapped[str | None] = mapped_column(Text)
    specialty: Mapped[str | None] = mapped_column(Text)
    stamp_url: Mapped[str | None] = mapped_column(Text)
    accountant_email: Mapped[str | None] = mapped_column(Text)
    google_review_url: Mapped[str | None] = mapped_column(Text)
    password_hash: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        CheckConstraint("gender IN ('M', 'F')", name="ck_patients_gender"),
        Index("idx_patients_practitioner", "practitioner_id"),
        Index("idx_patients_archived", "archived_at"),
    )

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    gender: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    birth_date: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text)
    profession: Mapped[str | None] = mapped_column(Text)
    sport_activity: Mapped[str | None] = mapped_column(Text)
    primary_physician: Mapped[str | None] = mapped_column(Text)
    trauma_history: Mapped[str | None] = mapped_column(Text)
    medical_history: Mapped[str | None] = mapped_column(Text)
    surgical_history: Mapped[str | None] = mapped_column(Text)
    family_history: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    archived_at: Mapped[str | None] = mapped_column(Text)


class SessionType(Base):
    __tablename__ = "session_types"

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=ONE)
    created_at: Mapped[str] = mapped_column(Text, nullable=False, server_default=NOW)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False, server_default=NOW)


class Consultation(Base):
    __tablename__ = "consultations"
    __table_args__ = (
        Index("idx_consultations_patient", "patient_id"),
        Index("idx_consultations_datetime", "date_time"),
    )

    id: Mapped[str] = _id_column()
    patient_id: Mapped[str] = mapped_column(ForeignKey("patients.id"), nullable=False)
    date_time: Mapped[str] = mapped_column(Text, nullable=False, server_default=NOW)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    anamnesis: Mapped[str | None] = mapped_column(Text)
    examination: Mapped[str | None] = mapped_column(Text)
    advice: Mapped[str | None] = mapped_column(Text)
    follow_up_7d: Mapped[bool | None] = mapped_column(Boolean, server_default=ZERO)
    follow_up_sent_at: Mapped[str | None] = mapped_column(Text)
    send_post_session_advice: Mapped[bool | None] = mapped_column(Boolean, server_default=ZERO)
    post_session_advice_sent_at: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    archived_at: Mapped[str | None] = mapped_column(Text)
    session_type_id: Mapped[str | None] = mapped_column(ForeignKey("session_types.id"))


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'issued', 'paid', 'cancelled')", name="ck_invoices_status"),
        Index("idx_invoices_consultation", "consultation_id"),
        Index("idx_invoices_status", "status"),
    )

    id: Mapped[str] = _id_column()
    consultation_id: Mapped[str] = mapped_column(ForeignKey("consultations.id"), nullable=False, unique=True)
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str | None] = mapped_column(Text, server_default=text("'draft'"))
    issued_at: Mapped[str | None] = mapped_column(Text)
    paid_at: Mapped[str | None] = mapped_column(Text)
    pdf_url: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("method IN ('card', 'cash', 'check', 'transfer', 'other')", name="ck_payments_method"),
        Index("idx_payments_invoice", "invoice_id"),
    )

    id: Mapped[str] = _id_column()
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    method: Mapped[str] = mapped_column(Text, nullable=False)
    payment_date: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("(date('now'))"))
    check_number: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (Index("idx_conversations_practitioner", "practitioner_id"),)

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    patient_id: Mapped[str | None] = mapped_column(ForeignKey("patients.id"))
    subject: Mapped[str | None] = mapped_column(Text)
    last_message_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    unread_count: Mapped[int | None] = mapped_column(Integer, server_default=ZERO)
    is_archived: Mapped[bool | None] = mapped_column(Boolean, server_default=ZERO)
    external_email: Mapped[str | None] = mapped_column(Text)
    external_name: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint("direction IN ('incoming', 'outgoing')", name="ck_messages_direction"),
        CheckConstraint("channel IN ('internal', 'email', 'sms')", name="ck_messages_channel"),
        CheckConstraint("status IN ('draft', 'sent', 'delivered', 'read', 'failed')", name="ck_messages_status"),
        Index("idx_messages_conversation", "conversation_id"),
    )

    id: Mapped[str] = _id_column()
    conversation_id: Mapped[str] = mapped_column(ForeignKey("conversations.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'outgoing'"))
    channel: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'internal'"))
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("'draft'"))
    consultation_id: Mapped[str | None] = mapped_column(ForeignKey("consultations.id"))
    sent_at: Mapped[str | None] = mapped_column(Text)
    delivered_at: Mapped[str | None] = mapped_column(Text)
    read_at: Mapped[str | None] = mapped_column(Text)
    email_subject: Mapped[str | None] = mapped_column(Text)
    email_message_id: Mapped[str | None] = mapped_column(Text)
    external_email_id: Mapped[str | None] = mapped_column(Text)
    from_email: Mapped[str | None] = mapped_column(Text)
    to_email: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class EmailSettings(Base):
    __tablename__ = "email_settings"

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False, unique=True)
    smtp_host: Mapped[str] = mapped_column(Text, nullable=False)
    smtp_port: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("587"))
    smtp_secure: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=ZERO)
    smtp_user: Mapped[str] = mapped_column(Text, nullable=False)
    smtp_password: Mapped[str] = mapped_column(Text, nullable=False)
    imap_host: Mapped[str] = mapped_column(Text, nullable=False)
    imap_port: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("993"))
    imap_secure: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=ONE)
    imap_user: Mapped[str] = mapped_column(Text, nullable=False)
    imap_password: Mapped[str] = mapped_column(Text, nullable=False)
    from_name: Mapped[str | None] = mapped_column(Text)
    from_email: Mapped[str] = mapped_column(Text, nullable=False)
    last_sync_at: Mapped[str | None] = mapped_column(Text)
    last_sync_uid: Mapped[int | None] = mapped_column(Integer, server_default=ZERO)
    sync_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=ONE)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=ZERO)
    last_error: Mapped[str | None] = mapped_column(Text)
    last_error_at: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class EmailTemplate(Base):
    __tablename__ = "email_templates"
    __table_args__ = (CheckConstraint("type IN ('invoice', 'follow_up_7d')", name="ck_email_templates_type"),)

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class MessageTemplate(Base):
    __tablename__ = "message_templates"

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text)
    use_count: Mapped[int | None] = mapped_column(Integer, server_default=ZERO)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class ScheduledTask(Base):
    __tablename__ = "scheduled_tasks"
    __table_args__ = (
        CheckConstraint("type IN ('follow_up_email')", name="ck_scheduled_tasks_type"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'cancelled')", name="ck_scheduled_tasks_status"
        ),
        Index("idx_scheduled_tasks_status", "status", "scheduled_for"),
    )

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    consultation_id: Mapped[str | None] = mapped_column(ForeignKey("consultations.id"))
    scheduled_for: Mapped[str] = mapped_column(Text, nullable=False)
    executed_at: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str | None] = mapped_column(Text, server_default=text("'pending'"))
    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (CheckConstraint("action IN ('INSERT', 'UPDATE', 'DELETE')", name="ck_audit_logs_action"),)

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str | None] = mapped_column(ForeignKey("practitioners.id"))
    table_name: Mapped[str] = mapped_column(Text, nullable=False)
    record_id: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    old_data: Mapped[Any | None] = mapped_column(JSON)
    new_data: Mapped[Any | None] = mapped_column(JSON)
    ip_address: Mapped[str | None] = mapped_column(Text)
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class SavedReport(Base):
    __tablename__ = "saved_reports"

    id: Mapped[str] = _id_column()
    practitioner_id: Mapped[str] = mapped_column(ForeignKey("practitioners.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    filters: Mapped[Any] = mapped_column(JSON, nullable=False, server_default=text("'{}'"))
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class MedicalHistoryEntry(Base):
    __tablename__ = "medical_history_entries"
    __table_args__ = (
        CheckConstraint(
            "history_type IN ('traumatic', 'medical', 'surgical', 'family')", name="ck_mhe_history_type"
        ),
        CheckConstraint("onset_age >= 0", name="ck_mhe_onset_age"),
        CheckConstraint("onset_duration_value > 0", name="ck_mhe_onset_duration_value"),
        CheckConstraint(
            "onset_duration_unit IN ('days', 'weeks', 'months', 'years')", name="ck_mhe_onset_duration_unit"
        ),
        Index("idx_medical_history_patient", "patient_id"),
    )

    id: Mapped[str] = _id_column()
    patient_id: Mapped[str] = mapped_column(ForeignKey("patients.id"), nullable=False)
    history_type: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    onset_date: Mapped[str | None] = mapped_column(Text)
    onset_age: Mapped[int | None] = mapped_column(Integer)
    onset_duration_value: Mapped[int | None] = mapped_column(Integer)
    onset_duration_unit: Mapped[str | None] = mapped_column(Text)
    is_vigilance: Mapped[bool | None] = mapped_column(Boolean, server_default=ZERO)
    note: Mapped[str | None] = mapped_column(Text)
    display_order: Mapped[int | None] = mapped_column(Integer, server_default=ZERO)
    created_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)
    updated_at: Mapped[str | None] = mapped_column(Text, server_default=NOW)


class AppConfig(Base):
    """Chiave/valore applicativo (es. current_user_id della sessione locale)."""
    __tablename__ = "app_config"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
