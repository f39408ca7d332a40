#!/usr/bin/env python3
"""
Run the workflow HTTP API with uvicorn.
"""

import os
import sys
from pathlib import Path

# Make the package importable when run from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent))


def main() -> None:
    import uvicorn

    uvicorn.run(
        "boxflow.api.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
