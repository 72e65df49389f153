#!/usr/bin/env python
"""
ASGI entry point for the emulator's FastAPI app.
"""

import os

from emulator.protocol_rpc.fastapi_server import app

application = app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "asgi:application",
        host="0.0.0.0",
        port=int(os.getenv("RPCPORT", "4000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
    )
