"""
API Routes
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Modulo per l'aggregazione dei router versionati.
"""

from fruttagest.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
