"""ASGI entrypoint for the users API."""

from moby_users.api.app import create_app
from moby_users.containers import build_container

app = create_app(build_container())
