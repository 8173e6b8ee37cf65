from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..config import settings
from ..dates import format_local_date, local_today
from ..metrics import registry

router = APIRouter(tags=["health"])


@router.get("/healthz")
def health_check() -> dict[str, str]:
    """Liveness probe that also reports the server's notion of "today".

    Se `today` divergir da data do usuário, o fuso configurado está errado
    e as revisões vão virar atrasadas no dia errado.
    """
    return {
        "status": "ok",
        "timezone": settings.timezone,
        "today": format_local_date(local_today()),
    }


@router.get("/metrics")
def metrics() -> JSONResponse:
    return JSONResponse(content={"paths": registry.snapshot()})
