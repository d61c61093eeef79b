# ============================================================
# publisher.py - Émission d'événements RabbitMQ
# ------------------------------------------------------------
# Le service informe le reste de l'application des changements
# d'état (ReservationRequested, ReservationApproved,
# ReservationRejected, AreaDeleted...) via l'échange "events".
# Les vues "live" (calendrier, cloche de notifications) s'y
# abonnent ; le cœur métier ne consomme jamais ses propres
# événements.
# ============================================================
import json
import logging
import os

import pika

RABBIT_HOST = os.getenv("RABBITMQ_HOST", "localhost")
EVENTS_ENABLED = os.getenv("EVENTS_ENABLED", "1") not in ("0", "false", "no")

logger = logging.getLogger(__name__)


# Publie un message sur l'échange "events" en mode fanout :
#
#   - event_type : nom de l'événement
#   - payload    : contenu du message (types JSON simples)
#
# Tous les consommateurs liés à l'échange reçoivent le message.
def publish_event(event_type: str, payload: dict):
    if not EVENTS_ENABLED:
        logger.debug("events disabled, dropping %s", event_type)
        return
    conn = pika.BlockingConnection(pika.ConnectionParameters(host=RABBIT_HOST))
    try:
        ch = conn.channel()
        # durable=True pour survivre aux redémarrages RabbitMQ
        ch.exchange_declare(exchange="events", exchange_type="fanout", durable=True)
        message = {"type": event_type, "payload": payload}
        ch.basic_publish(exchange="events", routing_key="", body=json.dumps(message, default=str))
        logger.info("[event] %s %s", event_type, payload)
    finally:
        conn.close()


# L'écriture en base fait foi : un échec de publication est journalisé
# mais n'annule pas l'opération déjà validée.
def safe_publish(publish, event_type: str, payload: dict):
    try:
        publish(event_type, payload)
    except Exception:
        logger.exception("failed to publish %s for %s", event_type, payload)
