"""
ASGI entrypoint: expose `app` pour les process managers / déploiements
(ex: gunicorn -k uvicorn.workers.UvicornWorker voteapp.asgi:app).
"""
from voteapp.app_setup.factory import create_app

app = create_app()
