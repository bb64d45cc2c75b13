"""
asgi.py -- Application assembly for the assignment tracker.

This is the ONLY file that imports both api/main.py and web/routes.py. It
joins the app (middleware, lifespan, error handling) with the HTML routes.
web/ may use api's shared limiter and response models, but api/main.py never
imports web/.

Run with:  python main.py serve
           uvicorn asgi:app --reload
"""

from api.main import app
from web.routes import router as web_router

app.include_router(web_router, tags=["Web UI"])
