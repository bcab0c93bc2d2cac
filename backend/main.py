"""Local server entry point: `python main.py` from backend/."""
import uvicorn

from finpro.core.config import settings


def run():
    uvicorn.run(
        "finpro.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
