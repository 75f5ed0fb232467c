from fastapi import APIRouter

from src.backend.v4.api.eaccounting_router import eaccounting_router

app_v4 = APIRouter(
    prefix="/api/v4",
    responses={404: {"description": "Not found"}},
)

app_v4.include_router(eaccounting_router)


@app_v4.get("/health")
def health():
    return {"status": "ok"}
