"""
Lancement local: python -m poolsafe

Variables lues:
- PORT (8000 par défaut)
- UVICORN_RELOAD=1/true/yes pour le rechargement automatique
- LOG_LEVEL (info par défaut)
"""
import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "poolsafe.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=os.environ.get("LOG_LEVEL", "info"),
    )


if __name__ == "__main__":
    main()
