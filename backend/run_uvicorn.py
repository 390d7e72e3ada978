"""Development launcher for Uvicorn that ensures logging is configured before reload workers start."""

from __future__ import annotations

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from store_common.logging.setup_logging import setup_logging


def main() -> None:
    """Configure logging and delegate to uvicorn.run."""

    # Load environment variables BEFORE setting up logging
    env = os.getenv("APP_ENV", "local")
    base_dir = Path(__file__).resolve().parent.parent
    for env_file in (base_dir / f".env.{env}", base_dir / ".env"):
        if env_file.exists():
            _ = load_dotenv(env_file)
            break

    setup_logging()
    uvicorn.run(
        "storefront.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        reload=True,
        reload_dirs=[".", "../libs"],  # Watch current dir (backend) and libs
    )


if __name__ == "__main__":
    main()
