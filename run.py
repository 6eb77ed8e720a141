import os

import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    # Single worker by default: each worker launches its own browser, and
    # the session semaphore only bounds concurrency within one process.
    workers = int(os.environ.get("WEB_CONCURRENCY", 1))
    uvicorn.run(
        "umvvs.app.main:app",
        host="0.0.0.0",
        port=port,
        workers=workers,
    )
