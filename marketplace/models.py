import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    username = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(Text, nullable=False)  # bcrypt hash (legacy rows may hold plaintext)
    role = Column(String(20), nullable=False, default="provider")  # customer or provider
    employee_id = Column(String(50), unique=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=generate_id)
    service_type = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(Text, nullable=False, default="")
    preferred_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    preferred_time = Column(String(5), nullable=False)  # HH:MM
    estimated_price = Column(Integer, nullable=True)  # dollars
    # requested → accepted → deposit_due → confirmed → completed, or cancelled
    status = Column(String(20), nullable=False, default="requested", index=True)
    customer_id = Column(String(36), nullable=True, index=True)
    provider_id = Column(String(36), nullable=True, index=True)
    # Incremented on every update; used for conditional writes
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Contract
    contract_terms = Column(Text, nullable=True)
    customer_signature = Column(Text, nullable=True)  # data URL of the drawn signature
    provider_signature = Column(Text, nullable=True)
    signed_at = Column(DateTime, nullable=True)

    # Final payment
    payment_status = Column(String(20), default="pending")
    checkout_session_id = Column(String(255), nullable=True)
    payment_link_token = Column(String(64), nullable=True, index=True)

    # Scheduling
    is_urgent = Column(Boolean, default=False, nullable=False)
    response_deadline = Column(DateTime, nullable=True)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_access_token = Column(String(64), nullable=True, index=True)

    # Deposit
    deposit_amount = Column(Integer, default=100)
    deposit_status = Column(String(20), default="pending")
    deposit_checkout_session_id = Column(String(255), nullable=True)
    deposit_paid_at = Column(DateTime, nullable=True)

    # Appointment tracking
    appointment_date_time = Column(DateTime, nullable=True)
    previous_appointment_date_time = Column(DateTime, nullable=True)
    reschedule_count = Column(Integer, default=0)
    rescheduled_at = Column(DateTime, nullable=True)

    # Cancellation / late change fees
    cancellation_fee = Column(Integer, default=0)
    cancellation_fee_status = Column(String(20), default="none")
    cancelled_at = Column(DateTime, nullable=True)

    # Job site tracking
    mechanic_checked_in_at = Column(DateTime, nullable=True)
    mechanic_checked_out_at = Column(DateTime, nullable=True)
    actual_start_time = Column(DateTime, nullable=True)
    actual_end_time = Column(DateTime, nullable=True)
    job_notes = Column(Text, nullable=True)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_id)
    job_id = Column(String(36), nullable=False, index=True)
    customer_id = Column(String(36), nullable=False, index=True)
    provider_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    conversation_id = Column(String(36), nullable=False, index=True)
    sender_id = Column(String(36), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)


class AdminSession(Base):
    __tablename__ = "admin_sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    token = Column(String(64), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    expires_at = Column(DateTime, nullable=False)


class ProviderSession(Base):
    __tablename__ = "provider_sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    provider_id = Column(String(36), nullable=False)
    token = Column(String(64), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    expires_at = Column(DateTime, nullable=False)


class CustomerSession(Base):
    __tablename__ = "customer_sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), nullable=False)
    token = Column(String(64), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    expires_at = Column(DateTime, nullable=False)


class CustomerVerificationCode(Base):
    __tablename__ = "customer_verification_codes"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False)
