"""
API v1 Routes
Progetto: Repair Desk (Gestionale Centro Assistenza)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from app.api.v1 import invoices

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(invoices.router)

# Esportazione
__all__ = ["api_v1_router"]
