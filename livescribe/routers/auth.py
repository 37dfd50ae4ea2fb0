import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from livescribe.core.errors import ValidationError
from livescribe.routers.deps import get_services
from livescribe.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


class MockLoginRequest(BaseModel):
    email: Optional[str] = None


@router.post("/mock-login")
async def mock_login(body: MockLoginRequest = MockLoginRequest(),
                     services: Services = Depends(get_services)):
    """Создаёт или возвращает тестового пользователя по email (только для локальной разработки)."""
    if not body.email:
        raise ValidationError("email is required")
    try:
        user = await services.store.get_or_create_user(body.email)
    except SQLAlchemyError as e:
        logger.exception("Ошибка mock-login: %s", e)
        return JSONResponse(status_code=500,
                            content={"error": "Failed to create/login user", "detail": str(e)})
    return {"userId": user.id}
