import logging
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .services import PracticeService
from .models import Card, ChooseRequest, NewSessionRequest, RunStats, SessionView, StartSessionRequest

settings = get_settings()
logging.getLogger().setLevel(settings.log_level.upper())

app = FastAPI(title="Flashdrill Practice API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Singleton Service
service = PracticeService(settings)


@app.on_event("startup")
def startup_event():
    if not service.load_data():
        logging.warning("Could not load catalog CSV, using built-in words.")


@app.on_event("shutdown")
async def shutdown_event():
    await service.close()


@app.get("/session", response_model=SessionView)
async def get_session():
    return service.view()


@app.post("/session/start", response_model=SessionView)
async def start_session(request: StartSessionRequest):
    await service.start_session(request.card_count, request.custom_words, request.language)
    return service.view()


@app.post("/session/new", response_model=SessionView)
async def start_new_session(request: NewSessionRequest):
    await service.start_new_session(request.card_count)
    return service.view()


@app.post("/session/swipe-left", response_model=SessionView)
async def swipe_left():
    service.swipe_left()
    return service.view()


@app.post("/session/swipe-right", response_model=SessionView)
async def swipe_right():
    service.swipe_right()
    return service.view()


@app.post("/session/swipe-up", response_model=SessionView)
async def swipe_up():
    service.swipe_up()
    return service.view()


@app.post("/session/choose", response_model=SessionView)
async def choose_option(request: ChooseRequest):
    service.choose_option(request.index)
    return service.view()


@app.post("/session/advance", response_model=SessionView)
async def advance_to_next_card():
    service.advance_to_next_card()
    return service.view()


@app.delete("/session", response_model=SessionView)
async def stop_session():
    service.stop_session()
    return service.view()


@app.get("/cards/{language}", response_model=List[Card])
def list_cards(language: str):
    if language not in service.catalog.languages():
        raise HTTPException(status_code=404, detail="Unknown language")
    return service.catalog.list_cards(language)


@app.get("/stats/{language}", response_model=RunStats)
def get_stats(language: str):
    return service.get_stats(language)
