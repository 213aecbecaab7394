"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from remix.api import chat, groups, ops, social, users
from remix.api.errors import install_error_handlers
from remix.api.middleware_request_id import RequestIdMiddleware
from remix.container import build_container
from remix.domain.realtime.sockets import SubscriptionsNamespace
from remix.infra.redis import close_redis
from remix.obs import init as obs_init
from remix.settings import settings

container = build_container()


@asynccontextmanager
async def lifespan(app: FastAPI):
	await container.start()
	try:
		yield
	finally:
		await container.stop()
		await close_redis()


app = FastAPI(title="Remix Social Core", lifespan=lifespan)
app.state.services = container
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
		]
	else:
		allow_origins = [origin for origin in allow_origins if origin != "*"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
subscriptions_namespace = SubscriptionsNamespace(container.hub)
sio.register_namespace(subscriptions_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

# Ensure every request carries an X-Request-Id and make it available on request.state
app.add_middleware(RequestIdMiddleware)

app.include_router(users.router, tags=["users"])
app.include_router(social.router, tags=["social"])
app.include_router(groups.router, tags=["groups"])
app.include_router(chat.router, tags=["chat"])
app.include_router(ops.router)
