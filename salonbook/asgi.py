"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn -k uvicorn.workers.UvicornWorker).
"""

from salonbook.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "salonbook.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
