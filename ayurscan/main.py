"""
FastAPI приложение AyurScan: анализ кожи по фото с аюрведическими рекомендациями
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ayurscan.config import settings
from ayurscan.api.router import router
from ayurscan.utils.constants import APP_NAME, APP_VERSION

# Настройка логирования
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events для инициализации и очистки ресурсов"""
    logger.info("=" * 80)
    logger.info(f"🔬 {APP_NAME} Backend (FastAPI) v{APP_VERSION}")
    logger.info("=" * 80)
    if settings.host == "0.0.0.0":
        logger.info(f"📡 Сервер запущен на http://0.0.0.0:{settings.port} (доступен по http://localhost:{settings.port})")
    else:
        logger.info(f"📡 Сервер запущен на http://{settings.host}:{settings.port}")
    logger.info(f"🤖 Основной провайдер: {settings.primary_provider}")
    logger.info(f"💾 История: {settings.history_path}")
    logger.info("=" * 80)
    yield
    logger.info("Сервер остановлен")


app = FastAPI(
    title=f"{APP_NAME} API",
    description="""
    API для анализа состояния кожи по фотографии с помощью vision моделей.

    ## Возможности

    * Анализ фото через Google Gemini или Mistral Pixtral с автоматическим fallback
    * Разбор отчёта: тяжесть, вероятные заболевания, рекомендации, аюрведические средства
    * Структурированный JSON режим
    * История анализов с поиском, экспортом и импортом
    * Поддержка форматов JPEG, PNG, WEBP, HEIC

    ## Swagger документация

    Полная интерактивная документация доступна по адресу `/docs` (Swagger UI) или `/redoc` (ReDoc).
    """,
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
async def index():
    """Информация о сервисе"""
    return {
        "message": f"{APP_NAME} API",
        "version": APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
        "api": "/api",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ayurscan.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
