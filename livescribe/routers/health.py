import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from livescribe.routers.deps import get_services
from livescribe.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health(services: Services = Depends(get_services)):
    try:
        ok, detail = await services.gemini.check()
    except Exception as e:
        logger.exception("Ошибка проверки здоровья: %s", e)
        return JSONResponse(status_code=500, content={"ok": False, "detail": str(e)})
    if not ok:
        return JSONResponse(status_code=503, content={"ok": False, "detail": detail})
    return {"ok": True, "detail": detail}
