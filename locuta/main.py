from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from locuta.api import websocket
from locuta.core.config import settings
from locuta.core.logging import setup_logging

# Setup logging before app startup
setup_logging()

app = FastAPI(title="Locuta Voice Analyzer")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(websocket.router)


@app.get("/")
def health_check():
    return {"status": "Locuta voice analyzer is running"}
