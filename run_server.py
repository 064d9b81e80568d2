import logging
import os

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("RITUAL_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )
    # Stream the scripted mock run unless the caller opted out.
    os.environ.setdefault("RITUAL_RUN_FEED", "1")

    print("Starting Ritual Engine API Server...")
    print("Docs available at: http://localhost:8000/docs")

    uvicorn.run(
        "backend.api.server:app",
        host="0.0.0.0",
        port=int(os.environ.get("RITUAL_PORT", "8000")),
        reload=False
    )
