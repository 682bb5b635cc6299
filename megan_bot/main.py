from fastapi import Depends, FastAPI

from megan_bot.config import settings
from megan_bot.dependencies import Bot, build_bot, get_bot
from megan_bot.logging_config import get_logger, setup_logging
from megan_bot.routers import webhook

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Megan Bot",
    description="Messenger chatbot for Tiendas Megan",
    version="0.1.0",
)

app.include_router(webhook.router)


@app.on_event("startup")
async def start_bot() -> None:
    if getattr(app.state, "bot", None) is None:
        app.state.bot = build_bot(settings)
    logger.info("Bot started")


@app.on_event("shutdown")
async def stop_bot() -> None:
    bot = getattr(app.state, "bot", None)
    if bot is None:
        return
    bot.close()
    app.state.bot = None
    logger.info("Bot stopped, inactivity timers cancelled")


@app.get("/health")
async def health(bot: Bot = Depends(get_bot)):
    return {"status": "ok", "active_sessions": len(bot.store)}
