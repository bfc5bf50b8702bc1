# questlog/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from questlog.config import settings
from questlog.core.errors import LifecycleError
from questlog.database import Base, engine
from questlog.models import report, task, user, workspace  # noqa: F401  (register tables)
from questlog.routers import dashboard, quests, reports

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Questlog - Report & Quest Lifecycle", version="1.0")

# Include Routers
app.include_router(reports.router)
app.include_router(quests.router)
app.include_router(dashboard.router)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Create DB Tables (for demo only)
@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))


@app.get("/")
def read_root():
    return {"message": "Welcome to Questlog"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("questlog.main:app", host="0.0.0.0", port=8000, reload=True)
