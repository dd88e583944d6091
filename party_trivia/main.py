# party_trivia/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from party_trivia.config import Config
from party_trivia.database import init_db
from party_trivia.logger import setup_logging
from party_trivia.routes import questions, rooms

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("✅ Rooms table ready")
    yield


app = FastAPI(title="Party Trivia", lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=False,  # must stay False while origins is "*"
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include room store, event stream and question routes
app.include_router(rooms.router)
app.include_router(questions.router)


@app.get("/")
def root():
    return {"message": "Party trivia backend ready"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
