# ============================================================
# app.py - Point d'entrée du service Amenities
# ------------------------------------------------------------
# Ce module initialise l'application FastAPI du service :
#   - Configure le logging
#   - Crée les tables dans la base de données au démarrage
#   - Monte les routes API et le handler d'erreurs métier
# ============================================================
import logging

from fastapi import FastAPI
from sqlmodel import SQLModel

import models  # noqa: F401  (enregistre les tables dans SQLModel.metadata)
from api import engine, reservation_error_handler, router
from errors import ReservationError
from logconfig import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Amenities Service")


# Exécuté automatiquement par FastAPI au lancement du conteneur :
# crée les tables (Area, Reservation, SlotHold) si besoin.
@app.on_event("startup")
def start():
    SQLModel.metadata.create_all(engine)
    logger.info("amenities service started")


@app.get("/health")
def health():
    return {"ok": True}


app.add_exception_handler(ReservationError, reservation_error_handler)

# Inclusion des routes principales REST
app.include_router(router)
