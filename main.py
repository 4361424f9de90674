import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from infrastructure.db.sqlite import init_db
from infrastructure.payments.pixup_provider import close_pixup_provider
from infrastructure.web.controllers.user_controller import router as user_router
from infrastructure.web.controllers.room_controller import router as room_router
from infrastructure.web.controllers.pix_controller import router as pix_router
from infrastructure.web.realtime import router as realtime_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Desafio de Damas")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
def on_startup():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db(settings.DB_PATH)
    if not settings.pixup_configured:
        logger.warning("PixUp sandbox credentials not configured. Set PIXUP_CLIENT_ID and PIXUP_CLIENT_SECRET; "
                       "deposits will use the local stub provider.")
    logger.info("PUBLIC_URL=%s", settings.PUBLIC_URL)

@app.on_event("shutdown")
def on_shutdown():
    close_pixup_provider()

@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(user_router)
app.include_router(room_router)
app.include_router(pix_router)
app.include_router(realtime_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
