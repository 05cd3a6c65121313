import argparse
import logging
import logging.config
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from greencredit.client import get_openai_client
from greencredit.config.settings import settings
from greencredit.pipeline import PipelineOrchestrator
from greencredit.routes import assessment
from greencredit.services import AssessmentStages, OpenAIOracle
from greencredit.session import AssessmentSession

# ========================= LOGGING =========================

_handlers = {"console": {"class": "logging.StreamHandler", "formatter": "simple"}}
if settings.LOG_FILE:
    _handlers["file"] = {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "simple",
        "filename": settings.LOG_FILE,
        "maxBytes": 10_000_000,
        "backupCount": 5,
    }

logging.config.dictConfig({
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"}
    },
    "handlers": _handlers,
    "root": {"level": "INFO", "handlers": list(_handlers)},
})

logger = logging.getLogger("greencredit")


# ========================= FASTAPI APP =========================

def build_session() -> AssessmentSession:
    oracle = OpenAIOracle(get_openai_client(settings.ORACLE_MODEL), settings.ORACLE_MODEL)
    return AssessmentSession(PipelineOrchestrator(AssessmentStages(oracle)))


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.session = build_session()
    logger.info(f"Assessment session ready (oracle model {settings.ORACLE_MODEL})")
    yield
    session = app.state.session
    session.close()
    await session.staleness.wait_for_runs()
    logger.info("Assessment session closed")


app = FastAPI(
    title="GreenCredit Assessment API",
    description="Staged financial and sustainability risk assessment with live re-scoring",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assessment.router)


@app.get("/health")
async def health():
    return {"status": "healthy"}


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()
    uvicorn.run("greencredit.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
