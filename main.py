import argparse
import uvicorn
from fastapi import FastAPI
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from config import load_config
from routes import tables, relations, study, flashcards, rewards, stats, sessions  # Import routers
from utils.logging_util import set_log_level, setup_logger

logger = setup_logger("main")


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init DB and config
    config = load_config()  # Ensures config exists
    set_log_level(config["logging"]["level"])
    init_db()
    logger.info("VocabQuest ready")
    yield


app = FastAPI(
    title="VocabQuest",
    description="Local-first vocabulary trainer with priority-driven study sessions",
    lifespan=lifespan,
)

# Include routers
app.include_router(tables.router, prefix="/tables", tags=["tables"])
app.include_router(relations.router, prefix="/relations", tags=["relations"])
app.include_router(study.router, prefix="/study", tags=["study"])
app.include_router(flashcards.router, prefix="/flashcards", tags=["flashcards"])
app.include_router(rewards.router, prefix="/rewards", tags=["rewards"])
app.include_router(stats.router, prefix="/stats", tags=["stats"])
app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])


@app.get("/")
async def home():
    return {"app": "VocabQuest", "docs": "/docs"}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="VocabQuest App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        print("DB initialized and config copied to ~/.vocabquest/")
        sys.exit(0)
    # Run server
    port = 8000
    reload = args.dev
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=reload, log_level="info")
