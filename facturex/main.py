"""
Application FastAPI : microservice d'extraction des champs de factures (FR/EN) à partir du texte.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from facturex.api.routes import router
from facturex.core.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Vérification de la config au démarrage."""
    if settings.ai_available:
        logger.info("Configuration chargée (fallback IA actif, modèle %s).", settings.llm_model)
    else:
        logger.warning("Fallback IA inactif : extraction locale uniquement.")
    yield


app = FastAPI(
    title="Facturex",
    description="Extraction et réconciliation des champs de factures (numéro, HT, TVA, TTC, dates).",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
def health():
    """Endpoint de santé pour vérifier que le service répond."""
    return {"status": "ok"}
