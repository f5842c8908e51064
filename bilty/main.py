from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bilty.src import schemas
from bilty.src.constants import API_TITLE, API_VERSION
from bilty.src.db import sessionMaker
from bilty.src.store import dataStore
from bilty.api.controller import app_user


@asynccontextmanager
async def lifespan(app: FastAPI):
    with sessionMaker() as session:
        dataStore.load(session)
    yield


app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)

origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/user", app_user, "User API")


# Health check endpoint
@app.get("/health", tags=["Health Check"], response_model=schemas.HealthStatus)
async def health_check():
    return {"status": "OK", "version": API_VERSION}
