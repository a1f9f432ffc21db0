from __future__ import annotations

from sqlalchemy import select

from .db import Database, new_uuid, utc_now_iso
from .models import Practitioner, SessionType

DEFAULT_PRACTITIONER = ("Studio", "Ambulatorio", "studio@ambulatorio.local")

DEFAULT_SESSION_TYPES = [
    ("Prima visita", 60.0),
    ("Controllo", 50.0),
    ("Urgenza", 70.0),
]


def seed_base(db: Database) -> None:
    """
    Popola dati minimi (idempotente):
    - un professionista di default se il DB è vuoto
    - tipi seduta di default per ogni professionista
    """
    with db.session() as s:
        if s.execute(select(Practitioner.id).limit(1)).first() is None:
            first_name, last_name, email = DEFAULT_PRACTITIONER
            now = utc_now_iso()
            s.add(Practitioner(
                user_id=new_uuid(),
                first_name=first_name,
                last_name=last_name,
                email=email,
                created_at=now,
                updated_at=now,
            ))
            s.flush()

        for p in s.execute(select(Practitioner)).scalars().all():
            for name, price in DEFAULT_SESSION_TYPES:
                exists = s.execute(
                    select(SessionType).where(SessionType.practitioner_id == p.id, SessionType.name == name)
                ).scalar_one_or_none()
                if exists is None:
                    s.add(SessionType(practitioner_id=p.id, name=name, price=price, is_active=True))
