from typing import Optional
import datetime
import uuid

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, ForeignKeyConstraint, Index, Integer, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from studypartner.libs.formats.datetime import now as get_now


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = 'user'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='user_pk'),
        UniqueConstraint('email', name='user_email_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password: Mapped[str] = mapped_column(String, nullable=False)
    fullname: Mapped[str] = mapped_column(String, nullable=False, default='')
    last_login_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)

    profile: Mapped[Optional['Profiles']] = relationship('Profiles', uselist=False, back_populates='user')


class Profiles(Base):
    __tablename__ = 'profiles'
    __table_args__ = (
        CheckConstraint("role IN ('student', 'tutor', 'admin')", name='profiles_role_check'),
        CheckConstraint('tokens >= 0', name='profiles_tokens_non_negative'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='profiles_user_id_fkey'),
        PrimaryKeyConstraint('id', name='profiles_pkey'),
        UniqueConstraint('user_id', name='profiles_user_id_key'),
        Index('idx_profiles_role', 'role'),
        Index('idx_profiles_role_approved', 'role', 'is_approved'),
        {'comment': 'Role-specific account record (1 user = 1 profile)'}
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text)
    expertise: Mapped[Optional[list[str]]] = mapped_column(JSON)
    hourly_rate: Mapped[Optional[int]] = mapped_column(Integer, comment='Tokens per hour (tutors)')
    tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment='Token balance')
    total_earnings: Mapped[Optional[int]] = mapped_column(Integer, comment='Lifetime earned tokens (tutors)')
    is_approved: Mapped[Optional[bool]] = mapped_column(Boolean)
    profile_image: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)

    user: Mapped['User'] = relationship('User', back_populates='profile')


class Notes(Base):
    __tablename__ = 'notes'
    __table_args__ = (
        CheckConstraint("processing_status IN ('pending', 'processing', 'completed', 'failed')", name='notes_status_check'),
        CheckConstraint("processed = (processing_status = 'completed')", name='notes_processed_matches_status'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='notes_user_id_fkey'),
        PrimaryKeyConstraint('id', name='notes_pkey'),
        Index('idx_notes_user', 'user_id'),
        Index('idx_notes_status', 'processing_status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(String(255))
    file_id: Mapped[Optional[str]] = mapped_column(String(64), comment='Blob storage reference')
    file_type: Mapped[Optional[str]] = mapped_column(String(100))
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processing_status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)


class Flashcards(Base):
    __tablename__ = 'flashcards'
    __table_args__ = (
        CheckConstraint("difficulty IN ('easy', 'medium', 'hard')", name='flashcards_difficulty_check'),
        ForeignKeyConstraint(['note_id'], ['notes.id'], name='flashcards_note_id_fkey'),
        PrimaryKeyConstraint('id', name='flashcards_pkey'),
        Index('idx_flashcards_note', 'note_id'),
        Index('idx_flashcards_user', 'user_id'),
        Index('idx_flashcards_difficulty', 'difficulty'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False, default='medium')
    subject: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)


class Quizzes(Base):
    __tablename__ = 'quizzes'
    __table_args__ = (
        ForeignKeyConstraint(['note_id'], ['notes.id'], name='quizzes_note_id_fkey'),
        PrimaryKeyConstraint('id', name='quizzes_pkey'),
        Index('idx_quizzes_note', 'note_id'),
        Index('idx_quizzes_user', 'user_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    questions: Mapped[list[dict]] = mapped_column(JSON, nullable=False, comment='[{question, options[4], correct_answer, explanation}]')
    subject: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)


class Summaries(Base):
    __tablename__ = 'summaries'
    __table_args__ = (
        ForeignKeyConstraint(['note_id'], ['notes.id'], name='summaries_note_id_fkey'),
        PrimaryKeyConstraint('id', name='summaries_pkey'),
        Index('idx_summaries_note', 'note_id'),
        Index('idx_summaries_user', 'user_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    key_points: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    subject: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)


class TutoringSessions(Base):
    __tablename__ = 'tutoring_sessions'
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'accepted', 'rejected', 'completed', 'cancelled')", name='tutoring_sessions_status_check'),
        CheckConstraint('price >= 0', name='tutoring_sessions_price_non_negative'),
        CheckConstraint('duration > 0', name='tutoring_sessions_duration_positive'),
        CheckConstraint('rating IS NULL OR (rating BETWEEN 1 AND 5)', name='tutoring_sessions_rating_range'),
        CheckConstraint("rating IS NULL OR status = 'completed'", name='tutoring_sessions_rating_requires_completed'),
        ForeignKeyConstraint(['student_id'], ['user.id'], name='tutoring_sessions_student_id_fkey'),
        ForeignKeyConstraint(['tutor_id'], ['user.id'], name='tutoring_sessions_tutor_id_fkey'),
        PrimaryKeyConstraint('id', name='tutoring_sessions_pkey'),
        Index('idx_tutoring_sessions_student', 'student_id'),
        Index('idx_tutoring_sessions_tutor', 'tutor_id'),
        Index('idx_tutoring_sessions_status', 'status'),
        Index('idx_tutoring_sessions_scheduled_time', 'scheduled_time'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    tutor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_time: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment='Minutes')
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    price: Mapped[int] = mapped_column(Integer, nullable=False, comment='Tokens, fixed at booking time')
    meeting_link: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    rating: Mapped[Optional[int]] = mapped_column(Integer)
    review: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now, onupdate=get_now)


class Transactions(Base):
    __tablename__ = 'transactions'
    __table_args__ = (
        CheckConstraint("type IN ('token_purchase', 'tutoring_payment', 'tutor_earning', 'withdrawal')", name='transactions_type_check'),
        CheckConstraint("status IN ('pending', 'completed', 'failed', 'refunded')", name='transactions_status_check'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='transactions_user_id_fkey'),
        PrimaryKeyConstraint('id', name='transactions_pkey'),
        UniqueConstraint('payment_ref', name='transactions_payment_ref_key'),
        Index('idx_transactions_user_date', 'user_id', 'created_at'),
        Index('idx_transactions_type', 'type'),
        Index('idx_transactions_status', 'status'),
        {'comment': 'Append-only ledger of every balance-affecting event'}
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    tokens: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    payment_ref: Mapped[Optional[str]] = mapped_column(String(100), comment='Simulated payment intent id')
    session_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
    confirmed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)


class Notifications(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        CheckConstraint("type IN ('info', 'success', 'warning', 'error')", name='notifications_type_check'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='notifications_user_id_fkey'),
        PrimaryKeyConstraint('id', name='notifications_pkey'),
        Index('idx_notifications_user', 'user_id'),
        Index('idx_notifications_read', 'is_read'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False, default='info')
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    action_url: Mapped[Optional[str]] = mapped_column(Text)
    read_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)


class StudySessions(Base):
    __tablename__ = 'study_sessions'
    __table_args__ = (
        CheckConstraint("type IN ('flashcards', 'quiz', 'notes')", name='study_sessions_type_check'),
        CheckConstraint('duration >= 0', name='study_sessions_duration_non_negative'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='study_sessions_user_id_fkey'),
        PrimaryKeyConstraint('id', name='study_sessions_pkey'),
        Index('idx_study_sessions_user', 'user_id'),
        Index('idx_study_sessions_date', 'date'),
        Index('idx_study_sessions_user_date', 'user_id', 'date'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    note_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment='Minutes')
    score: Mapped[Optional[float]] = mapped_column(Float)
    date: Mapped[str] = mapped_column(String(10), nullable=False, comment='YYYY-MM-DD')
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=get_now)
