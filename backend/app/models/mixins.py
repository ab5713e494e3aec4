"""
Mixin SQLAlchemy per modelli
Progetto: Repair Desk (Gestionale Centro Assistenza)

Mixin riutilizzabili per aggiungere funzionalità comuni ai modelli:
chiave UUID, timestamp, soft delete e appartenenza all'azienda (tenant).
"""

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, Session, declared_attr, mapped_column
from sqlalchemy.sql import func


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class SoftDeleteMixin:
    """
    Mixin per la disattivazione logica.

    Filiali e metodi di pagamento non vengono mai eliminati fisicamente:
    is_active = False li esclude dalle nuove operazioni ma mantiene
    integri i riferimenti storici (fatture, pagamenti).
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="False = disattivato, True = attivo",
    )


class TimestampMixin:
    """
    Mixin per gestione automatica timestamp creazione e aggiornamento.

    created_at può essere valorizzato esplicitamente: i pagamenti
    importati dagli acconti dell'intervento conservano la data originale.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Data/ora di creazione del record",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Data/ora ultimo aggiornamento del record",
    )


class UUIDMixin:
    """Mixin per ID UUID generato lato applicazione."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


class CompanyScopedMixin:
    """
    Mixin per i record che appartengono a un'azienda.

    Ogni lettura del service layer filtra per company_id: un id valido
    di un'altra azienda si comporta come inesistente (NotFoundError).
    """

    @declared_attr
    def company_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            Uuid,
            ForeignKey("companies.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
            doc="UUID dell'azienda proprietaria",
        )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Aggiorna updated_at sugli oggetti nuovi e su quelli modificati.

    Gli oggetti dirty vengono toccati solo se hanno davvero colonne
    modificate (le sole variazioni di collezioni non contano).
    """
    now = _utcnow()

    for obj in session.dirty:
        if hasattr(obj, "updated_at") and session.is_modified(obj, include_collections=False):
            obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now
