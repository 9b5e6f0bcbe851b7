import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# DEV defaults. Override through the environment in any real deployment.
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/skillup.db")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Submission attachments are uploaded elsewhere; we only accept descriptors for these types
ALLOWED_ATTACHMENT_TYPES = (".pdf", ".docx", ".pptx", ".zip", ".jpg", ".png")
