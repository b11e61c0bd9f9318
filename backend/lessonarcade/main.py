from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lessonarcade.database import engine, Base
from lessonarcade.routers import dashboard, insights, lesson_runs, voice

import lessonarcade.models  # noqa: F401  (register tables on Base.metadata)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="LessonArcade Insights API", version="0.3.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(insights.router)
app.include_router(dashboard.router)
app.include_router(lesson_runs.router)
app.include_router(voice.router)


@app.get("/")
def root():
    return {"app": "lessonarcade", "version": "0.3.0"}
