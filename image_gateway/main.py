import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI

from image_gateway.routers.files import router as files_router

load_dotenv()

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(), format=LOG_FORMAT)

app = FastAPI(title="S3 Image Gateway")

app.include_router(files_router)

# Reminder: S3_BUCKET must be set in the environment before the first request

__all__ = ["app"]
