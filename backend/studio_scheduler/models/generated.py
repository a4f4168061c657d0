from sqlalchemy import Column, ForeignKey, Integer, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Providers(Base):
    __tablename__ = 'providers'

    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    timezone = Column(Text, nullable=False, server_default=text("'America/New_York'"))
    slot_duration_minutes = Column(Integer, nullable=False, server_default=text('60'))
    booking_horizon_days = Column(Integer, nullable=False, server_default=text('90'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    email = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    daily_templates = relationship('DailyTemplates', back_populates='provider')
    date_overrides = relationship('DateOverrides', back_populates='provider')
    bookings = relationship('Bookings', back_populates='provider')


class DailyTemplates(Base):
    __tablename__ = 'daily_templates'

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday .. 6 = Saturday
    is_enabled = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    start_time = Column(Text)  # "HH:MM"
    end_time = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    provider = relationship('Providers', back_populates='daily_templates')
    breaks = relationship(
        'TemplateBreaks',
        back_populates='template',
        cascade='all, delete-orphan',
        passive_deletes=True,
        order_by='TemplateBreaks.start_time',
    )


class TemplateBreaks(Base):
    __tablename__ = 'template_breaks'

    template_id = Column(ForeignKey('daily_templates.id', ondelete='CASCADE'), nullable=False, index=True)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    label = Column(Text)

    template = relationship('DailyTemplates', back_populates='breaks')


class DateOverrides(Base):
    __tablename__ = 'date_overrides'
    __table_args__ = (
        UniqueConstraint('provider_id', 'date'),
    )

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    date = Column(Text, nullable=False)  # "YYYY-MM-DD" in provider timezone
    breaks = Column(Text, nullable=False, server_default=text("'[]'"))
    id = Column(Integer, primary_key=True)
    start_time = Column(Text)  # both NULL = closed
    end_time = Column(Text)
    reason = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    provider = relationship('Providers', back_populates='date_overrides')


class Bookings(Base):
    __tablename__ = 'bookings'

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(Text, nullable=False)
    start_at = Column(Text, nullable=False)  # UTC ISO-8601
    end_at = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'PENDING'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    id = Column(Integer, primary_key=True)
    client_name = Column(Text)
    client_email = Column(Text)
    client_phone = Column(Text)
    notes = Column(Text)
    cancel_reason = Column(Text)

    provider = relationship('Providers', back_populates='bookings')
