"""FastAPI application entry point - delegates to app.main."""

from app.main import app

__all__ = ["app"]


if __name__ == "__main__":
    import uvicorn
    from app.config import Config

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=Config.LOG_LEVEL.lower())
