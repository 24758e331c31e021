import uvicorn

from proofpass.config import settings

if __name__ == "__main__":
    uvicorn.run("proofpass.main:app", host="127.0.0.1", port=8000, log_level=settings.LOG_LEVEL.lower())
