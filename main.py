"""
CareFinder entry point
Run with: python main.py or uvicorn carefinder.api.main:app --reload

Set SEED_DATA_PATH to preload the doctor and hospital collections and
EMBEDDING_PROVIDER=e5 to embed queries with the local E5 model.
"""

import uvicorn

from carefinder.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "carefinder.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,  # Auto-reload only in debug mode
        log_level=settings.log_level.lower(),
    )
