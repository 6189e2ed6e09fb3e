import uuid

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from siterouter.db.base_class import Base
from siterouter.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Site(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'sites'
    __table_args__ = (
        UniqueConstraint('subdomain', name='uq_sites_subdomain'),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    subdomain: Mapped[str] = mapped_column(String(63), nullable=False)
    # Legacy single custom domain; Domain rows are authoritative.
    custom_domain: Mapped[str | None] = mapped_column(String(255), nullable=True)

    domains: Mapped[list['Domain']] = relationship(
        back_populates='site', cascade='all, delete-orphan'
    )


class Domain(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = 'domains'
    __table_args__ = (
        UniqueConstraint('host', name='uq_domains_host'),
    )

    site_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey('sites.id', ondelete='CASCADE'), nullable=False
    )
    host: Mapped[str] = mapped_column(String(255), nullable=False)

    site: Mapped['Site'] = relationship(back_populates='domains')


Index('ix_sites_custom_domain', Site.custom_domain)
Index('ix_domains_site', Domain.site_id)
