"""
Live notification push for donors.

Clients connect to ``ws/notifications/?token=<access token>``. The token
is validated exactly like the ``Authorization`` header; donors then join
``donor.<id>`` and receive every notification created for them.
"""
import json
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from rest_framework.exceptions import AuthenticationFailed

from core.authentication import JWTAuthentication
from core.models import User
from core.services.notifications import donor_group

CLOSE_UNAUTHENTICATED = 4401
CLOSE_FORBIDDEN = 4403


def _user_from_token(raw):
    if not raw:
        return None
    auth = JWTAuthentication()
    try:
        return auth.get_user(auth.get_validated_token(raw))
    except AuthenticationFailed:
        return None


class NotificationsConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        query = parse_qs((self.scope.get("query_string") or b"").decode())
        raw = (query.get("token") or [None])[0]
        user = await sync_to_async(_user_from_token)(raw)
        if user is None:
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return
        if user.user_type != User.TYPE_DONOR:
            await self.close(code=CLOSE_FORBIDDEN)
            return

        self.group_name = donor_group(user.pk)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def notification_push(self, event):
        # event: {"type": "notification.push", "notification": {...}}
        await self.send(json.dumps({"type": "notification", **event["notification"]}))
