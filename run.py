import os
import sys

import uvicorn

from app.core.config import settings

# UTF-8 stdout on Windows; stderr is left alone for tqdm.
if os.name == "nt":
    os.environ["PYTHONIOENCODING"] = "utf-8"
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

if __name__ == "__main__":
    # One worker: the corpus cache and model singletons live in-process,
    # and each SSE request is a single event-loop task.
    dev = settings.environment == "development"
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        workers=1,
        reload=dev,
        log_level=settings.log_level.lower() if dev else "warning",
    )
