# config.py
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "smartedu")

# JWT settings - override SECRET_KEY in every deployed environment
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))

# Frontend origin allowed by CORS, next to the local dev servers
CLIENT_URL = os.getenv("CLIENT_URL")
ALLOWED_ORIGINS = [
    origin
    for origin in [CLIENT_URL, "http://localhost:5173", "http://localhost:5174"]
    if origin
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR")  # file logging is off unless set

# Compare-and-set attempts before a progress/rating write gives up with 409
PROGRESS_MAX_RETRIES = int(os.getenv("PROGRESS_MAX_RETRIES", "5"))
