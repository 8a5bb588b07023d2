from fastapi import APIRouter

from contract_assembly.api.v1.endpoints import contracts

api_router = APIRouter()
api_router.include_router(contracts.router, prefix="/contracts", tags=["contracts"])
