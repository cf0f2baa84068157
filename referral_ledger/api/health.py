"""Health check эндпоинт.

- GET /health - liveness probe для мониторинга
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Проверка состояния сервиса.

    Returns:
        Словарь со статусом "ok"
    """
    return {"status": "ok"}
