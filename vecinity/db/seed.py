# vecinity/db/seed.py
import logging

from sqlalchemy.orm import Session

from vecinity.core.config import settings
from vecinity.core.security import hash_password
from vecinity.models.category import Category
from vecinity.models.user import User, UserRole, default_preferences

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {
        "nombre": "infraestructura",
        "descripcion": "Problemas de infraestructura urbana",
        "color": "#3B82F6",
        "icono": "building",
        "orden": 1,
        "subcategorias": [
            {"nombre": "coladeras", "descripcion": "Coladeras tapadas o sin tapa"},
            {"nombre": "calles", "descripcion": "Baches y daños en calles"},
            {"nombre": "alumbrado", "descripcion": "Luminarias apagadas o dañadas"},
        ],
    },
    {
        "nombre": "basura",
        "descripcion": "Problemas de recolección de basura",
        "color": "#10B981",
        "icono": "trash",
        "orden": 2,
        "subcategorias": [
            {"nombre": "recolección", "descripcion": "Falta de recolección"},
            {"nombre": "contenedores", "descripcion": "Contenedores llenos o dañados"},
        ],
    },
    {
        "nombre": "árboles",
        "descripcion": "Problemas con árboles y vegetación",
        "color": "#059669",
        "icono": "tree",
        "orden": 3,
        "subcategorias": [
            {"nombre": "caídos", "descripcion": "Árboles caídos"},
            {"nombre": "poda", "descripcion": "Árboles que requieren poda"},
        ],
    },
]


def seed_initial_data(db: Session) -> dict:
    """Creates the default superadmin and categories; rows that already exist are left alone."""
    created = {"admin": False, "categorias": 0}

    email = settings.seed_admin_email.lower()
    admin = db.query(User).filter(User.email == email).first()
    if not admin:
        admin = User(
            nombre="Administrador",
            calle="Centro",
            numero="1",
            email=email,
            whatsapp="+5210000000000",
            hashed_password=hash_password(settings.seed_admin_password),
            role=UserRole.superadmin,
            is_active=True,
            is_verified=True,
            preferences=default_preferences(),
        )
        db.add(admin)
        db.flush()
        created["admin"] = True
        logger.info("Created superadmin %s", email)

    for entry in DEFAULT_CATEGORIES:
        if db.query(Category).filter(Category.nombre == entry["nombre"]).first():
            continue
        subs = [{**s, "icono": "default-sub-icon"} for s in entry["subcategorias"]]
        db.add(Category(**{**entry, "subcategorias": subs}, is_active=True, created_by=admin.id))
        created["categorias"] += 1

    db.commit()
    logger.info("Seed complete: %s", created)
    return created
