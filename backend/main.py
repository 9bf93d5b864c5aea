import os
import sys
import logging

# Ensure this directory is in the path for uvicorn and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import LOG_LEVEL
from database import init_db
from routes.auth_routes import router as auth_router
from routes.rest_routes import router as rest_router
from routes.realtime_routes import router as realtime_router

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# Initialize db configuration
init_db()

app = FastAPI(title="Momentum")


@app.get("/health-check")
async def health():
    return {"status": "ok", "message": "Backend is alive!"}


# Configure CORS for the browser client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to the client's origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(rest_router)
app.include_router(realtime_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
