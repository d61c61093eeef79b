# ============================================================
# logconfig.py - Configuration du logging
# ------------------------------------------------------------
# Format texte lisible par défaut ; LOG_FORMAT=json bascule sur
# python-json-logger pour l'agrégation des logs en conteneur.
# ============================================================
import logging.config
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json" if LOG_FORMAT == "json" else "standard",
            "stream": "ext://sys.stdout",
        },
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        # pika est très bavard en INFO
        "pika": {"level": "WARNING"},
    },
}


def setup_logging():
    logging.config.dictConfig(LOGGING_CONFIG)
