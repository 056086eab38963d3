# postflow/dependencies/app_state.py
# Accessors for the process-wide collaborators the app factory puts on app.state.
from fastapi import Request
import redis.asyncio as aioredis

from ..config import Settings
from ..infrastructure.automation_gateway import AutomationGateway
from ..infrastructure.email import Mailer
from ..infrastructure.n8n_client import N8nClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_redis(request: Request) -> aioredis.Redis:
    return request.app.state.redis


def get_gateway(request: Request) -> AutomationGateway:
    return request.app.state.gateway


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_n8n_client(request: Request) -> N8nClient:
    return request.app.state.n8n_client
