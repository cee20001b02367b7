from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from core.config import get_settings
from server.api import router as schema_router

load_dotenv()
app = FastAPI(title="Telemetry Schema Deduce", description="Turn raw records into dimensions, metrics and charts")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount the schema API router
app.include_router(schema_router)


@app.get("/health")
async def health():
    return {"ok": True}
